"""Ledger package.

Public API:
- FundingLedger: accept contributions above a USD minimum, owner-only withdrawal.
"""

from .ledger import FundingLedger, MINIMUM_USD  # re-export
