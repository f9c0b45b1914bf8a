"""Flat-file JSON backends: one file per challenge, purchase and account."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any
from urllib.parse import quote

from _01_engine import rules
from _01_engine.accounts import AccountService, RefillMetadata
from _01_engine.state import Challenge, UserPurchase
from _01_engine.store import ChallengeStore, PurchaseStore

logger = logging.getLogger(__name__)


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2))
    os.replace(tmp, path)


def _read_json(path: Path) -> dict[str, Any] | None:
    try:
        return json.loads(path.read_text())
    except FileNotFoundError:
        return None


def _safe_name(key: str) -> str:
    return quote(key, safe="")


class JsonChallengeStore(ChallengeStore):
    """Challenges stored as ``<root>/challenges/<id>.json``."""

    def __init__(self, root: str | Path):
        self._dir = Path(root) / "challenges"
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, challenge_id: str) -> Path:
        return self._dir / f"{_safe_name(challenge_id)}.json"

    def list(self) -> list[Challenge]:
        challenges = []
        for path in self._dir.glob("*.json"):
            data = _read_json(path)
            if data is None:
                continue
            try:
                challenges.append(Challenge.from_dict(data))
            except (KeyError, TypeError, ValueError):
                logger.exception("Skipping unreadable challenge file %s", path)
        return sorted(challenges, key=lambda c: c.created_at)

    def get(self, challenge_id: str) -> Challenge | None:
        data = _read_json(self._path(challenge_id))
        return Challenge.from_dict(data) if data is not None else None

    def put(self, challenge: Challenge) -> None:
        _write_json(self._path(challenge.id), challenge.to_dict())


class JsonPurchaseStore(PurchaseStore):
    """Purchases stored as ``<root>/purchases/<challenge>/<index>.json``.

    Files are created with exclusive mode, so the first writer of a word
    wins even across processes sharing the directory.
    """

    def __init__(self, root: str | Path):
        self._dir = Path(root) / "purchases"
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, challenge_id: str, word_index: int) -> Path:
        return self._dir / _safe_name(challenge_id) / f"{word_index}.json"

    def add(self, purchase: UserPurchase) -> UserPurchase | None:
        path = self._path(purchase.challenge_id, purchase.word_index)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "x") as f:
                json.dump(purchase.to_dict(), f, indent=2)
        except FileExistsError:
            return self.get(purchase.challenge_id, purchase.word_index)
        return None

    def remove(self, challenge_id: str, word_index: int) -> None:
        self._path(challenge_id, word_index).unlink(missing_ok=True)

    def get(self, challenge_id: str, word_index: int) -> UserPurchase | None:
        data = _read_json(self._path(challenge_id, word_index))
        return UserPurchase.from_dict(data) if data else None

    def list_for_challenge(self, challenge_id: str) -> list[UserPurchase]:
        folder = self._dir / _safe_name(challenge_id)
        found = []
        for path in folder.glob("*.json"):
            data = _read_json(path)
            if data:
                found.append(UserPurchase.from_dict(data))
        return sorted(found, key=lambda p: p.word_index)


class JsonAccountService(AccountService):
    """Balances stored as ``<root>/accounts/<user>.json``.

    Debits are serialised by an in-process lock; a single server process
    should own the directory.
    """

    def __init__(self, root: str | Path, starting_balance: int = rules.DEFAULT_STARTING_BALANCE):
        self._dir = Path(root) / "accounts"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._starting_balance = starting_balance
        self._lock = Lock()

    def _path(self, user_id: str) -> Path:
        return self._dir / f"{_safe_name(user_id)}.json"

    def _load(self, user_id: str) -> dict[str, Any]:
        data = _read_json(self._path(user_id))
        if data is None:
            data = {"id": user_id, "credits": self._starting_balance, "lastRefillAt": None}
        return data

    def get_balance(self, user_id: str) -> int:
        with self._lock:
            return int(self._load(user_id)["credits"])

    def debit(self, user_id: str, amount: int) -> bool:
        with self._lock:
            data = self._load(user_id)
            if data["credits"] < amount:
                return False
            data["credits"] -= amount
            _write_json(self._path(user_id), data)
            return True

    def credit(self, user_id: str, amount: int) -> None:
        with self._lock:
            data = self._load(user_id)
            data["credits"] += amount
            _write_json(self._path(user_id), data)

    def get_refill_metadata(self, user_id: str) -> RefillMetadata:
        with self._lock:
            raw = self._load(user_id).get("lastRefillAt")
        return RefillMetadata(last_refill_at=datetime.fromisoformat(raw) if raw else None)

    def set_refill_metadata(self, user_id: str, metadata: RefillMetadata) -> None:
        with self._lock:
            data = self._load(user_id)
            data["lastRefillAt"] = metadata.last_refill_at.isoformat() if metadata.last_refill_at else None
            _write_json(self._path(user_id), data)


__all__ = ["JsonAccountService", "JsonChallengeStore", "JsonPurchaseStore"]
