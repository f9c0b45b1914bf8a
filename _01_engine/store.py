"""Persistence contracts for challenges and hint purchases."""

from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Lock

from _01_engine.state import Challenge, UserPurchase


class ChallengeStore(ABC):
    """Keyed collection of challenge records.

    Implementations hand out copies; a caller only changes stored state by
    passing the mutated copy back to :meth:`put`.
    """

    @abstractmethod
    def list(self) -> list[Challenge]:
        """All challenges, oldest first."""
        ...

    @abstractmethod
    def get(self, challenge_id: str) -> Challenge | None:
        ...

    @abstractmethod
    def put(self, challenge: Challenge) -> None:
        """Insert or replace the record with ``challenge.id``."""
        ...


class PurchaseStore(ABC):
    """Word hint purchase records, unique per (challenge, word)."""

    @abstractmethod
    def add(self, purchase: UserPurchase) -> UserPurchase | None:
        """Insert ``purchase`` unless the word already has one.

        Returns:
            ``None`` when inserted, otherwise the record already held.
        """
        ...

    @abstractmethod
    def get(self, challenge_id: str, word_index: int) -> UserPurchase | None:
        ...

    @abstractmethod
    def remove(self, challenge_id: str, word_index: int) -> None:
        """Drop the record for a word, if any; used to undo a failed purchase."""
        ...

    @abstractmethod
    def list_for_challenge(self, challenge_id: str) -> list[UserPurchase]:
        ...


class InMemoryChallengeStore(ChallengeStore):
    """Thread-safe in-process challenge store."""

    def __init__(self) -> None:
        self._challenges: dict[str, Challenge] = {}
        self._lock = Lock()

    def list(self) -> list[Challenge]:
        with self._lock:
            challenges = [c.copy() for c in self._challenges.values()]
        return sorted(challenges, key=lambda c: c.created_at)

    def get(self, challenge_id: str) -> Challenge | None:
        with self._lock:
            challenge = self._challenges.get(challenge_id)
            return challenge.copy() if challenge is not None else None

    def put(self, challenge: Challenge) -> None:
        with self._lock:
            self._challenges[challenge.id] = challenge.copy()


class InMemoryPurchaseStore(PurchaseStore):
    """Thread-safe in-process purchase store."""

    def __init__(self) -> None:
        self._purchases: dict[tuple[str, int], UserPurchase] = {}
        self._lock = Lock()

    def add(self, purchase: UserPurchase) -> UserPurchase | None:
        with self._lock:
            existing = self._purchases.get(purchase.key)
            if existing is not None:
                return existing
            self._purchases[purchase.key] = purchase
            return None

    def get(self, challenge_id: str, word_index: int) -> UserPurchase | None:
        with self._lock:
            return self._purchases.get((challenge_id, word_index))

    def remove(self, challenge_id: str, word_index: int) -> None:
        with self._lock:
            self._purchases.pop((challenge_id, word_index), None)

    def list_for_challenge(self, challenge_id: str) -> list[UserPurchase]:
        with self._lock:
            found = [p for key, p in self._purchases.items() if key[0] == challenge_id]
        return sorted(found, key=lambda p: p.word_index)


__all__ = [
    "ChallengeStore",
    "InMemoryChallengeStore",
    "InMemoryPurchaseStore",
    "PurchaseStore",
]
