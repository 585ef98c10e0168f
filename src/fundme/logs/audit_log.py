from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional
import logging
import time

from ..metrics.ledger import get_journal_counters


REQUIRED_KEYS = {"ts", "ledger", "event", "caller", "amount", "outcome"}


def validate_record(rec: Dict[str, Any]) -> List[str]:
    return sorted(k for k in REQUIRED_KEYS if k not in rec)


def append_jsonl(path: str, rec: Dict[str, Any]) -> bool:
    """Append one audit record as a JSON line; return False if it was dropped."""
    app, err = get_journal_counters()
    missing = validate_record(rec)
    if missing:
        err.labels("missing_fields").inc()
        return False
    parent = os.path.dirname(path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    except OSError:
        err.labels("io_error").inc()
        return False
    app.labels(str(rec["event"])).inc()
    return True


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def log_ledger_event(
    event: str,
    ledger: str,
    caller: str,
    amount: int,
    outcome: str,
    ts: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Emit a structured JSON log line for a ledger operation and return the record.

    Keys: ts, ledger, event, caller, amount, outcome, component, schema_version
    """
    payload: Dict[str, Any] = {
        "ts": int(ts if ts is not None else int(time.time() * 1000)),
        "ledger": str(ledger),
        "event": str(event),
        "caller": str(caller),
        # amounts can exceed 2**53; keep them exact in JSON consumers
        "amount": str(int(amount)),
        "outcome": str(outcome),
        "component": "ledger",
        "schema_version": "v1",
    }
    if extra:
        payload["extra"] = extra
    try:
        logging.getLogger("fundme.ledger").info(json.dumps(payload, separators=(",", ":")))
    except Exception:
        # Logging must never throw
        pass
    return payload
