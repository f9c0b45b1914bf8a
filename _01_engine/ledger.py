"""Credit ledger: balance checks, debits, credits and the auto-refill policy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from _01_engine import rules
from _01_engine.accounts import AccountService, RefillMetadata
from _01_engine.exceptions import InsufficientFundsError
from _01_engine.state import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefillStatus:
    is_eligible: bool
    current_credits: int
    next_refill_at: datetime | None
    time_until_refill_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "isEligible": self.is_eligible,
            "currentCredits": self.current_credits,
            "nextRefillAt": self.next_refill_at.isoformat() if self.next_refill_at else None,
            "timeUntilRefill": self.time_until_refill_ms,
        }


@dataclass(frozen=True)
class RefillResult:
    success: bool
    credits_added: int
    new_balance: int
    next_refill_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "creditsAdded": self.credits_added,
            "newBalance": self.new_balance,
            "nextRefillAt": self.next_refill_at.isoformat() if self.next_refill_at else None,
        }


class CreditLedger:
    """Rules for moving credits in and out of user accounts."""

    def __init__(
        self,
        accounts: AccountService,
        *,
        refill_threshold: int = rules.REFILL_THRESHOLD,
        refill_amount: int = rules.REFILL_AMOUNT,
        refill_interval_seconds: int = rules.REFILL_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._accounts = accounts
        self._threshold = refill_threshold
        self._amount = refill_amount
        self._interval = timedelta(seconds=refill_interval_seconds)
        self._clock = clock
        self._refill_lock = Lock()

    @property
    def accounts(self) -> AccountService:
        return self._accounts

    def get(self, user_id: str) -> int:
        return self._accounts.get_balance(user_id)

    def can_afford(self, user_id: str, amount: int) -> bool:
        return self.get(user_id) >= amount

    def debit(self, user_id: str, amount: int) -> None:
        """Burn ``amount`` credits or raise without touching the balance."""
        if amount < 0:
            raise ValueError(f"Debit amount must be >= 0, got {amount}")
        if amount == 0:
            return
        if not self._accounts.debit(user_id, amount):
            raise InsufficientFundsError(user_id, amount, self.get(user_id))
        logger.debug("Debited %d GC from %s", amount, user_id)

    def credit(self, user_id: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be >= 0, got {amount}")
        if amount == 0:
            return
        self._accounts.credit(user_id, amount)
        logger.debug("Credited %d GC to %s", amount, user_id)

    def refill_status(self, user_id: str) -> RefillStatus:
        """Report refill eligibility, arming or disarming the timer as needed."""
        with self._refill_lock:
            return self._refill_status_locked(user_id)

    def process_refill(self, user_id: str) -> RefillResult:
        """Top the user up towards the threshold if the interval has elapsed."""
        with self._refill_lock:
            status = self._refill_status_locked(user_id)
            if not status.is_eligible or status.time_until_refill_ms > 0:
                return RefillResult(
                    success=False,
                    credits_added=0,
                    new_balance=status.current_credits,
                    next_refill_at=status.next_refill_at,
                )

            now = self._clock()
            added = min(self._amount, self._threshold - status.current_credits)
            self._accounts.credit(user_id, added)
            self._accounts.set_refill_metadata(user_id, RefillMetadata(last_refill_at=now))
            new_balance = self.get(user_id)
            logger.info("Refilled %d GC for %s (balance %d)", added, user_id, new_balance)
            return RefillResult(
                success=True,
                credits_added=added,
                new_balance=new_balance,
                next_refill_at=now + self._interval if new_balance < self._threshold else None,
            )

    def _refill_status_locked(self, user_id: str) -> RefillStatus:
        balance = self.get(user_id)
        metadata = self._accounts.get_refill_metadata(user_id)

        if balance >= self._threshold:
            if metadata.last_refill_at is not None:
                # Back above the line; the next dip starts a fresh interval.
                self._accounts.set_refill_metadata(user_id, RefillMetadata())
            return RefillStatus(
                is_eligible=False,
                current_credits=balance,
                next_refill_at=None,
                time_until_refill_ms=0,
            )

        now = self._clock()
        last_refill_at = metadata.last_refill_at
        if last_refill_at is None:
            last_refill_at = now
            self._accounts.set_refill_metadata(user_id, RefillMetadata(last_refill_at=now))

        next_refill_at = last_refill_at + self._interval
        remaining_ms = int((next_refill_at - now).total_seconds() * 1000)
        return RefillStatus(
            is_eligible=True,
            current_credits=balance,
            next_refill_at=next_refill_at,
            time_until_refill_ms=max(0, remaining_ms),
        )


__all__ = ["CreditLedger", "RefillResult", "RefillStatus"]
