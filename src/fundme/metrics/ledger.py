from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_fund_calls_total: Optional[Counter] = None
_funded_amount_total: Optional[Counter] = None
_withdrawals_total: Optional[Counter] = None
_ledger_balance: Optional[Gauge] = None
_funders_count: Optional[Gauge] = None
_oracle_reads_total: Optional[Counter] = None
_events_total: Optional[Counter] = None
_journal_appends: Optional[Counter] = None
_journal_errors: Optional[Counter] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing(name: str):
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if coll is not None:
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if getattr(coll, "_name", None) == name:
                return coll
    except Exception:
        pass
    return None


def _safe_counter(name: str, doc: str, labelnames):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        # already registered (module re-imported under another name)
        return _existing(name) or _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _existing(name) or _NoOp()


def get_fund_calls_total():
    """Counter: fund() calls by outcome (accepted|below_minimum|oracle_error|insufficient_funds)."""
    global _fund_calls_total
    if _fund_calls_total is None:
        _fund_calls_total = _safe_counter("fund_calls_total", "fund() calls", ["outcome"])
    return _fund_calls_total


def get_funded_amount_total():
    global _funded_amount_total
    if _funded_amount_total is None:
        _funded_amount_total = _safe_counter("funded_amount_total", "Native units accepted by fund()", [])
    return _funded_amount_total


def get_withdrawals_total():
    global _withdrawals_total
    if _withdrawals_total is None:
        _withdrawals_total = _safe_counter("withdrawals_total", "withdraw() calls", ["outcome"])
    return _withdrawals_total


def get_ledger_balance():
    global _ledger_balance
    if _ledger_balance is None:
        # Labeled by ledger address; several ledgers may share a process
        _ledger_balance = _safe_gauge("ledger_balance", "Ledger balance in native units", ["ledger"])
    return _ledger_balance


def get_funders_count():
    global _funders_count
    if _funders_count is None:
        _funders_count = _safe_gauge("ledger_funders", "Entries in the funders list", ["ledger"])
    return _funders_count


def get_oracle_reads_total():
    """Counter: price feed reads by outcome (ok|error|invalid|stale)."""
    global _oracle_reads_total
    if _oracle_reads_total is None:
        _oracle_reads_total = _safe_counter("oracle_reads_total", "Price feed reads", ["outcome"])
    return _oracle_reads_total


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("ledger_events_total", "Ledger events published", ["type"])
    return _events_total


def get_journal_counters():
    global _journal_appends, _journal_errors
    if _journal_appends is None:
        _journal_appends = _safe_counter("journal_appends_total", "Audit records appended", ["event"])
    if _journal_errors is None:
        _journal_errors = _safe_counter("journal_errors_total", "Audit journal errors", ["reason"])
    return _journal_appends, _journal_errors


def set_ledger_gauges(ledger: str, balance: int, funders: int) -> None:
    try:
        get_ledger_balance().labels(ledger=ledger).set(float(balance))
        get_funders_count().labels(ledger=ledger).set(float(funders))
    except Exception:
        # Metrics are optional in constrained environments
        pass
