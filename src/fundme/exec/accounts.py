from __future__ import annotations

import logging
import threading
from typing import Dict, List

from .model import new_address, parse_units
from ..errors import InsufficientFunds


logger = logging.getLogger(__name__)


class AccountBook:
    """Native-currency balances of every identity in the execution environment.

    Stands in for the chain: it hands out caller identities and moves value
    between them. Balances are integer base units.
    """

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    def create_account(self, balance: int = 0) -> str:
        if balance < 0:
            raise ValueError("starting balance must be >= 0")
        addr = new_address()
        with self._lock:
            self._balances[addr] = int(balance)
            self._order.append(addr)
        return addr

    def fund_accounts(self, count: int, balance: int = parse_units("10000")) -> List[str]:
        return [self.create_account(balance) for _ in range(count)]

    def accounts(self) -> List[str]:
        return list(self._order)

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("transfer amount must be >= 0")
        with self._lock:
            have = self._balances.get(sender, 0)
            if have < amount:
                raise InsufficientFunds(f"{sender} holds {have}, needs {amount}")
            self._balances[sender] = have - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
        logger.debug("transfer %s -> %s: %d", sender, recipient, amount)
