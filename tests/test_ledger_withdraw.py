import pytest

from src.fundme.errors import IndexOutOfRange, Unauthorized
from src.fundme.exec.model import parse_units


SEND_VALUE = parse_units("0.1")


def test_withdraw_from_single_funder(ledger, accounts, deployer):
    ledger.fund(deployer, SEND_VALUE)
    start_ledger = ledger.balance
    start_deployer = accounts.balance_of(deployer)

    w = ledger.withdraw(deployer)

    assert ledger.balance == 0
    assert accounts.balance_of(deployer) == start_ledger + start_deployer
    assert w.amount == SEND_VALUE
    assert w.funders_cleared == 1
    assert ledger.get_address_to_amount_funded(deployer) == 0


def test_withdraw_with_multiple_accounts(ledger, accounts, signers, deployer):
    for funder in signers[1:6]:
        ledger.fund(funder, SEND_VALUE)
    start_ledger = ledger.balance
    start_deployer = accounts.balance_of(deployer)
    assert start_ledger == 5 * SEND_VALUE

    ledger.withdraw(deployer)

    assert ledger.balance == 0
    assert accounts.balance_of(deployer) == start_ledger + start_deployer
    with pytest.raises(IndexOutOfRange):
        ledger.get_funder(0)
    for funder in signers[1:6]:
        assert ledger.get_address_to_amount_funded(funder) == 0
    assert ledger.is_consistent()


def test_only_owner_can_withdraw(ledger, accounts, signers):
    ledger.fund(signers[0], SEND_VALUE)
    attacker = signers[4]
    attacker_before = accounts.balance_of(attacker)
    with pytest.raises(Unauthorized) as exc:
        ledger.withdraw(attacker)
    assert exc.value.code == "FundMe__NotOwner"
    assert ledger.balance == SEND_VALUE
    assert ledger.get_funder(0) == signers[0]
    assert ledger.get_address_to_amount_funded(signers[0]) == SEND_VALUE
    assert accounts.balance_of(attacker) == attacker_before


def test_second_withdraw_is_noop(ledger, accounts, deployer, signers):
    ledger.fund(signers[1], SEND_VALUE)
    ledger.withdraw(deployer)
    after_first = accounts.balance_of(deployer)

    w = ledger.withdraw(deployer)

    assert w.amount == 0
    assert w.funders_cleared == 0
    assert ledger.balance == 0
    assert accounts.balance_of(deployer) == after_first
    assert len(ledger.withdrawals) == 2


def test_funding_resumes_after_withdraw(ledger, deployer, signers):
    ledger.fund(signers[1], SEND_VALUE)
    ledger.withdraw(deployer)
    ledger.fund(signers[2], SEND_VALUE)
    assert ledger.get_funder(0) == signers[2]
    assert ledger.get_address_to_amount_funded(signers[1]) == 0
    assert ledger.get_address_to_amount_funded(signers[2]) == SEND_VALUE
    assert ledger.balance == SEND_VALUE
