from __future__ import annotations

"""
Price feed interface and the deterministic mock feed.

A feed reports the USD price of one native unit as an integer scaled by
`decimals()` (8 decimals for the usual aggregators, so $2000 is
200000000000). `get_conversion_rate` normalizes that answer to 18 decimals
and converts a base-unit amount into an 18-decimal USD value.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..exec.model import UNIT_DECIMALS, ONE_UNIT, new_address
from ..errors import OracleUnavailable
from ..metrics.ledger import get_oracle_reads_total


logger = logging.getLogger(__name__)

USD_DECIMALS = 18


@dataclass
class RoundData:
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class PriceOracle:
    """Base price feed.

    Subclasses implement `latest_round_data` and `decimals`; `get_price`
    returns the latest answer.
    """

    def __init__(self, address: Optional[str] = None):
        self.address = address or new_address()

    def decimals(self) -> int:
        raise NotImplementedError

    def latest_round_data(self) -> RoundData:
        raise NotImplementedError

    def get_price(self) -> int:
        return self.latest_round_data().answer


class MockV3Aggregator(PriceOracle):
    """In-memory feed with a settable answer, for tests and offline demos."""

    def __init__(self, decimals: int = 8, initial_answer: int = 2000 * 10 ** 8, address: Optional[str] = None):
        super().__init__(address)
        self._decimals = int(decimals)
        self._lock = threading.Lock()
        self._round = RoundData(0, 0, 0, 0, 0)
        self.update_answer(initial_answer)

    def decimals(self) -> int:
        return self._decimals

    def update_answer(self, answer: int, ts: Optional[int] = None) -> None:
        now = int(ts if ts is not None else time.time())
        with self._lock:
            rid = self._round.round_id + 1
            self._round = RoundData(rid, int(answer), now, now, rid)

    def latest_round_data(self) -> RoundData:
        return self._round


def read_price(feed: PriceOracle, max_age_s: Optional[int] = None, now: Optional[int] = None) -> int:
    """Read the feed once and return the price normalized to 18 decimals.

    Any failure of the feed, a non-positive answer, or an answer older than
    `max_age_s` raises OracleUnavailable.
    """
    reads = get_oracle_reads_total()
    try:
        rd = feed.latest_round_data()
        dec = int(feed.decimals())
    except OracleUnavailable:
        reads.labels("error").inc()
        raise
    except Exception as e:
        reads.labels("error").inc()
        logger.warning(f"price feed {getattr(feed, 'address', '?')} read failed: {e}")
        raise OracleUnavailable(f"price feed read failed: {e}") from e
    if rd.answer <= 0:
        reads.labels("invalid").inc()
        raise OracleUnavailable(f"price feed returned non-positive answer {rd.answer}")
    if max_age_s is not None:
        current = int(now if now is not None else time.time())
        if current - rd.updated_at > max_age_s:
            reads.labels("stale").inc()
            raise OracleUnavailable(f"price is {current - rd.updated_at}s old (max {max_age_s}s)")
    reads.labels("ok").inc()
    if dec <= USD_DECIMALS:
        return rd.answer * 10 ** (USD_DECIMALS - dec)
    return rd.answer // 10 ** (dec - USD_DECIMALS)


def to_usd(amount: int, price_18: int) -> int:
    return price_18 * int(amount) // ONE_UNIT


def get_conversion_rate(amount: int, feed: PriceOracle, max_age_s: Optional[int] = None) -> int:
    """USD value (18 decimals) of `amount` base units at the feed's latest price."""
    return to_usd(amount, read_price(feed, max_age_s=max_age_s))


def minimum_amount_for(usd_threshold: int, price_18: int) -> int:
    """Smallest base-unit amount whose USD value reaches `usd_threshold`."""
    # ceil(usd * 10**18 / price)
    return -(-usd_threshold * 10 ** UNIT_DECIMALS // price_18)
