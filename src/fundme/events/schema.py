from __future__ import annotations

from typing import Literal, Optional, Union
from pydantic import BaseModel, Field


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    ledger: str
    caller: str


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Event types ----
# Amounts are integer base units, USD values 18-decimal fixed point.

class Funded(BaseEvent):
    event_type: Literal["funded"] = "funded"
    amount: int = Field(ge=0)
    usd_value: int = Field(ge=0)
    total_funded: int = Field(ge=0)


class FundRejected(BaseEvent):
    event_type: Literal["fund_rejected"] = "fund_rejected"
    amount: int
    code: str
    reason: str
    usd_value: Optional[int] = None


class Withdrawn(BaseEvent):
    event_type: Literal["withdrawn"] = "withdrawn"
    amount: int = Field(ge=0)
    funders_cleared: int = Field(ge=0)


class WithdrawRejected(BaseEvent):
    event_type: Literal["withdraw_rejected"] = "withdraw_rejected"
    code: str
    reason: str


AnyEvent = Union[Funded, FundRejected, Withdrawn, WithdrawRejected]
