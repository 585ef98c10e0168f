"""Ledger error types.

Each error carries a fixed `code` so callers (and tests) can match on it the
same way a reverted transaction is matched on its revert reason.
"""

from __future__ import annotations

from typing import Optional


class FundMeError(Exception):
    code = "FundMe__Error"
    message = "FundMe operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.args[0]}"


class InsufficientContribution(FundMeError):
    code = "FundMe__InsufficientContribution"
    message = "You need to spend more ETH!"


class Unauthorized(FundMeError):
    code = "FundMe__NotOwner"
    message = "caller is not the owner"


class IndexOutOfRange(FundMeError):
    code = "FundMe__IndexOutOfRange"
    message = "funder index out of range"


class OracleUnavailable(FundMeError):
    code = "FundMe__OracleUnavailable"
    message = "price feed unavailable"


class InsufficientFunds(FundMeError):
    code = "FundMe__InsufficientFunds"
    message = "sender balance too low"
