"""Account service contract holding per-user credit balances."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime  # noqa: TC003
from threading import Lock

from _01_engine import rules


@dataclass(frozen=True)
class RefillMetadata:
    """Bookkeeping for the auto-refill timer."""

    last_refill_at: datetime | None = None


class AccountService(ABC):
    """Owner of credit balances.

    ``debit`` must check and subtract as one step so that two concurrent
    debits can never take a balance below zero.
    """

    @abstractmethod
    def get_balance(self, user_id: str) -> int:
        ...

    @abstractmethod
    def debit(self, user_id: str, amount: int) -> bool:
        """Subtract ``amount``; return False and change nothing if it would go negative."""
        ...

    @abstractmethod
    def credit(self, user_id: str, amount: int) -> None:
        ...

    @abstractmethod
    def get_refill_metadata(self, user_id: str) -> RefillMetadata:
        ...

    @abstractmethod
    def set_refill_metadata(self, user_id: str, metadata: RefillMetadata) -> None:
        ...


class InMemoryAccountService(AccountService):
    """Balances kept in process memory; unknown users start at ``starting_balance``."""

    def __init__(self, starting_balance: int = rules.DEFAULT_STARTING_BALANCE):
        self._starting_balance = starting_balance
        self._balances: dict[str, int] = {}
        self._refills: dict[str, RefillMetadata] = {}
        self._lock = Lock()

    def _balance_locked(self, user_id: str) -> int:
        return self._balances.setdefault(user_id, self._starting_balance)

    def get_balance(self, user_id: str) -> int:
        with self._lock:
            return self._balance_locked(user_id)

    def debit(self, user_id: str, amount: int) -> bool:
        with self._lock:
            balance = self._balance_locked(user_id)
            if balance < amount:
                return False
            self._balances[user_id] = balance - amount
            return True

    def credit(self, user_id: str, amount: int) -> None:
        with self._lock:
            self._balances[user_id] = self._balance_locked(user_id) + amount

    def get_refill_metadata(self, user_id: str) -> RefillMetadata:
        with self._lock:
            return self._refills.get(user_id, RefillMetadata())

    def set_refill_metadata(self, user_id: str, metadata: RefillMetadata) -> None:
        with self._lock:
            self._refills[user_id] = metadata

    def set_balance(self, user_id: str, amount: int) -> None:
        """Overwrite a balance (seeding and administration)."""
        with self._lock:
            self._balances[user_id] = amount


__all__ = ["AccountService", "InMemoryAccountService", "RefillMetadata"]
