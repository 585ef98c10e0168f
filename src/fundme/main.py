"""
Main entrypoint for fundme.

What it does:
- Loads runtime settings from `config/config.yaml` and environment variables.
- Builds the price feed (deterministic mock or a live ccxt ticker), a set of
  pre-funded accounts, and a FundingLedger owned by the first account.
- Runs a short demo: every other account contributes `FUNDME_DEMO_AMOUNT`
  (default 0.1), one contribution below the minimum and one non-owner
  withdrawal are rejected, then the owner withdraws everything.
- Writes the audit journal and, when `reports_dir` is set, parquet reports.

Where it is used:
- Invoked by `python -m fundme.main` or the `fundme` console script.
"""
import logging
import os
from typing import Optional

from .config.loader import Settings, load_settings
from .errors import FundMeError
from .exec.accounts import AccountBook
from .exec.model import format_units, parse_units
from .ledger import FundingLedger
from .metrics.core import start_server_safe
from .oracle.feed import MockV3Aggregator, PriceOracle, minimum_amount_for, read_price


def build_price_feed(settings: Settings) -> PriceOracle:
    oracle = settings.oracle
    if oracle.kind == "ccxt":
        from .oracle.ccxt_feed import CcxtPriceFeed
        return CcxtPriceFeed(oracle)
    return MockV3Aggregator(decimals=oracle.decimals, initial_answer=oracle.initial_answer())


def build_ledger(settings: Settings, accounts: AccountBook, feed: Optional[PriceOracle] = None) -> FundingLedger:
    """Create pre-funded accounts and a ledger owned by the first of them."""
    signers = accounts.fund_accounts(settings.accounts.count, settings.accounts.starting_balance_units())
    return FundingLedger(
        price_feed=feed or build_price_feed(settings),
        owner=signers[0],
        accounts=accounts,
        minimum_usd=settings.minimum_usd_units(),
        max_price_age_s=settings.oracle.max_price_age_s,
        journal_path=settings.journal_path,
    )


def run_demo(ledger: FundingLedger, amount: int) -> None:
    accounts = ledger.accounts
    signers = [a for a in accounts.accounts() if a != ledger.address]
    price = read_price(ledger.get_price_feed(), max_age_s=ledger.max_price_age_s)
    minimum = minimum_amount_for(ledger.minimum_usd, price)
    logging.info(f"price ${format_units(price)}/unit; minimum contribution {format_units(minimum)} units")

    for funder in signers[1:]:
        ledger.fund(funder, amount)
    try:
        ledger.fund(signers[-1], max(minimum - 1, 0))
    except FundMeError as e:
        logging.info(f"rejected as expected: {e}")
    try:
        ledger.withdraw(signers[-1])
    except FundMeError as e:
        logging.info(f"rejected as expected: {e}")

    before = accounts.balance_of(ledger.owner)
    w = ledger.withdraw(ledger.owner)
    logging.info(
        f"owner withdrew {format_units(w.amount)} units from {w.funders_cleared} contributions; "
        f"owner balance {format_units(before)} -> {format_units(accounts.balance_of(ledger.owner))}"
    )
    if not ledger.is_consistent():
        raise RuntimeError("ledger balance does not match funder records")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings()
    logging.info(f"Oracle: {settings.oracle.kind}, minimum ${settings.minimum_usd}")

    start_server_safe(settings.metrics_port)

    ledger = build_ledger(settings, AccountBook())
    logging.info(f"Ledger {ledger.address} owned by {ledger.get_owner()}")
    run_demo(ledger, parse_units(os.getenv("FUNDME_DEMO_AMOUNT", "0.1")))

    if settings.reports_dir:
        ledger.write_parquet(settings.reports_dir)
        logging.info(f"Reports written to {settings.reports_dir}")


if __name__ == "__main__":
    main()
