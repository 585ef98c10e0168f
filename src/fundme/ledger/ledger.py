from __future__ import annotations

from typing import Dict, List, Optional
import logging
import os
import threading
import time
import pandas as pd

from ..errors import (
    FundMeError,
    IndexOutOfRange,
    InsufficientContribution,
    InsufficientFunds,
    OracleUnavailable,
    Unauthorized,
)
from ..events.bus import envelope, publish as publish_event
from ..events.schema import BaseEvent, Funded, FundRejected, Withdrawn, WithdrawRejected
from ..exec.accounts import AccountBook
from ..exec.model import ONE_UNIT, Contribution, Withdrawal, format_units
from ..logs.audit_log import append_jsonl, log_ledger_event
from ..metrics.ledger import (
    get_fund_calls_total,
    get_funded_amount_total,
    get_withdrawals_total,
    set_ledger_gauges,
)
from ..oracle.feed import PriceOracle, read_price, to_usd


logger = logging.getLogger(__name__)

MINIMUM_USD = 50 * 10 ** 18

_REJECT_OUTCOMES = {
    InsufficientContribution: "below_minimum",
    OracleUnavailable: "oracle_error",
    InsufficientFunds: "insufficient_funds",
}


class FundingLedger:
    """Crowdfunding ledger with a USD-denominated minimum and owner-only withdrawal.

    Value lives in the AccountBook under the ledger's own address, so the
    ledger balance is whatever that address holds. Every operation checks its
    preconditions and moves value before touching the funder records, so a
    failed call leaves the ledger exactly as it was.
    """

    def __init__(
        self,
        price_feed: PriceOracle,
        owner: str,
        accounts: AccountBook,
        minimum_usd: int = MINIMUM_USD,
        max_price_age_s: Optional[int] = None,
        journal_path: Optional[str] = None,
    ):
        self.price_feed = price_feed
        self.owner = owner
        self.accounts = accounts
        self.minimum_usd = int(minimum_usd)
        self.max_price_age_s = max_price_age_s
        self.journal_path = journal_path
        self.address = accounts.create_account(0)
        self._amount_funded: Dict[str, int] = {}
        self._funders: List[str] = []
        self.contributions: List[Contribution] = []
        self.withdrawals: List[Withdrawal] = []
        self._lock = threading.RLock()
        self._fund_calls = get_fund_calls_total()
        self._funded_amount = get_funded_amount_total()
        self._withdrawals = get_withdrawals_total()
        set_ledger_gauges(self.address, 0, 0)

    # ---- mutations ----

    def fund(self, caller: str, amount: int, ts: Optional[int] = None) -> Contribution:
        if amount < 0:
            raise ValueError("amount must be >= 0")
        ts = ts if ts is not None else int(time.time() * 1000)
        usd_value: Optional[int] = None
        rejected: Optional[FundMeError] = None
        with self._lock:
            try:
                price = read_price(self.price_feed, max_age_s=self.max_price_age_s)
                usd_value = to_usd(amount, price)
                if usd_value < self.minimum_usd:
                    raise InsufficientContribution()
                self.accounts.transfer(caller, self.address, amount)
            except FundMeError as e:
                rejected = e
            else:
                self._amount_funded[caller] = self._amount_funded.get(caller, 0) + amount
                self._funders.append(caller)
                contribution = Contribution(ts=ts, funder=caller, amount=amount, usd_value=usd_value, price=price)
                self.contributions.append(contribution)
                total = self._amount_funded[caller]
                funders = len(self._funders)
        # events and journal writes happen outside the lock
        if rejected is not None:
            self._fund_rejected(caller, amount, usd_value, rejected, ts)
            raise rejected
        self._fund_calls.labels("accepted").inc()
        self._funded_amount.inc(amount / ONE_UNIT)
        set_ledger_gauges(self.address, self.balance, funders)
        self._emit(
            Funded(ts=ts, ledger=self.address, caller=caller, amount=amount, usd_value=usd_value, total_funded=total),
            amount,
            "accepted",
        )
        return contribution

    def receive(self, caller: str, amount: int, ts: Optional[int] = None) -> Contribution:
        """Plain value transfer to the ledger; accepted on the same terms as fund()."""
        return self.fund(caller, amount, ts=ts)

    def withdraw(self, caller: str, ts: Optional[int] = None) -> Withdrawal:
        ts = ts if ts is not None else int(time.time() * 1000)
        if caller != self.owner:
            # owner is immutable, so the check needs no lock
            err = Unauthorized()
            self._withdrawals.labels("unauthorized").inc()
            self._emit(
                WithdrawRejected(ts=ts, ledger=self.address, caller=caller, code=err.code, reason=str(err.args[0])),
                0,
                err.code,
            )
            raise err
        with self._lock:
            amount = self.balance
            staged = dict(self._amount_funded)
            for funder in self._funders:
                staged[funder] = 0
            # ledger holds `amount`, so this transfer cannot fail
            self.accounts.transfer(self.address, self.owner, amount)
            withdrawal = Withdrawal(ts=ts, owner=self.owner, amount=amount, funders_cleared=len(self._funders))
            self._amount_funded = staged
            self._funders = []
            self.withdrawals.append(withdrawal)
        self._withdrawals.labels("ok" if amount else "empty").inc()
        set_ledger_gauges(self.address, 0, 0)
        self._emit(
            Withdrawn(ts=ts, ledger=self.address, caller=caller, amount=amount, funders_cleared=withdrawal.funders_cleared),
            amount,
            "ok",
        )
        return withdrawal

    # ---- reads ----

    def get_price_feed(self) -> PriceOracle:
        return self.price_feed

    def get_owner(self) -> str:
        return self.owner

    def get_address_to_amount_funded(self, identity: str) -> int:
        return self._amount_funded.get(identity, 0)

    def get_funder(self, index: int) -> str:
        with self._lock:
            if index < 0 or index >= len(self._funders):
                raise IndexOutOfRange(f"funder index {index} out of range (have {len(self._funders)})")
            return self._funders[index]

    def get_funders_count(self) -> int:
        return len(self._funders)

    @property
    def balance(self) -> int:
        return self.accounts.balance_of(self.address)

    def is_consistent(self) -> bool:
        with self._lock:
            return self.balance == sum(self._amount_funded.values())

    def write_parquet(self, base_dir: str = "data") -> None:
        os.makedirs(base_dir, exist_ok=True)
        # base-unit amounts overflow int64, so store them as strings next to float units
        contributions_df = pd.DataFrame([
            {
                "ts": c.ts,
                "funder": c.funder,
                "amount": str(c.amount),
                "amount_units": float(format_units(c.amount)),
                "usd_value": c.usd_value / 10 ** 18,
            }
            for c in self.contributions
        ], columns=["ts", "funder", "amount", "amount_units", "usd_value"])
        withdrawals_df = pd.DataFrame([
            {
                "ts": w.ts,
                "owner": w.owner,
                "amount": str(w.amount),
                "amount_units": float(format_units(w.amount)),
                "funders_cleared": w.funders_cleared,
            }
            for w in self.withdrawals
        ], columns=["ts", "owner", "amount", "amount_units", "funders_cleared"])
        contributions_df.to_parquet(os.path.join(base_dir, "contributions.parquet"))
        withdrawals_df.to_parquet(os.path.join(base_dir, "withdrawals.parquet"))

    # ---- observability ----

    def _fund_rejected(self, caller: str, amount: int, usd_value: Optional[int], err: FundMeError, ts: int) -> None:
        self._fund_calls.labels(_REJECT_OUTCOMES.get(type(err), "error")).inc()
        self._emit(
            FundRejected(
                ts=ts,
                ledger=self.address,
                caller=caller,
                amount=amount,
                code=err.code,
                reason=str(err.args[0]),
                usd_value=usd_value,
            ),
            amount,
            err.code,
        )

    def _emit(self, event: BaseEvent, amount: int, outcome: str) -> None:
        try:
            publish_event(envelope(event, correlation_id=f"{self.address}:{event.caller}"))
            rec = log_ledger_event(event.event_type, self.address, event.caller, amount, outcome, ts=event.ts)
            if self.journal_path:
                append_jsonl(self.journal_path, rec)
        except Exception as e:
            logger.warning(f"failed to record {event.event_type} event: {e}")
