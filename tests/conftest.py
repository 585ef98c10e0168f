import pytest

from src.fundme.exec.accounts import AccountBook
from src.fundme.exec.model import parse_units
from src.fundme.ledger.ledger import FundingLedger
from src.fundme.oracle.feed import MockV3Aggregator


@pytest.fixture(autouse=True)
def _no_event_bus(monkeypatch):
    monkeypatch.setenv("DISABLE_EVENT_BUS", "1")


@pytest.fixture
def accounts():
    return AccountBook()


@pytest.fixture
def signers(accounts):
    return accounts.fund_accounts(6, parse_units("10000"))


@pytest.fixture
def deployer(signers):
    return signers[0]


@pytest.fixture
def feed():
    # $2000 per unit, 8 decimals
    return MockV3Aggregator(decimals=8, initial_answer=2000 * 10 ** 8)


@pytest.fixture
def ledger(feed, deployer, accounts):
    return FundingLedger(price_feed=feed, owner=deployer, accounts=accounts)
