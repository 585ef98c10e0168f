from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union
import os

UNIT_DECIMALS = 18
ONE_UNIT = 10 ** UNIT_DECIMALS


def new_address() -> str:
    return "0x" + os.urandom(20).hex()


def parse_units(value: Union[str, int, float, Decimal], decimals: int = UNIT_DECIMALS) -> int:
    """Convert a human amount ("0.1") into integer base units.

    Rejects values with more precision than `decimals` allows.
    """
    try:
        d = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"invalid amount: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    scaled = d.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {value!r} exceeds {decimals} decimals")
    return int(scaled)


def format_units(amount: int, decimals: int = UNIT_DECIMALS) -> str:
    d = Decimal(int(amount)).scaleb(-decimals).normalize()
    # normalize() turns 100 into 1E+2
    return format(d, "f")


@dataclass
class Contribution:
    ts: int
    funder: str
    amount: int
    usd_value: int
    price: int


@dataclass
class Withdrawal:
    ts: int
    owner: str
    amount: int
    funders_cleared: int
