"""Challenge, word and purchase records."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from _01_engine import rules


class WordState(str, Enum):
    """Purchase-side lifecycle of a single word."""

    LOCKED = "locked"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_purchased(self) -> bool:
        return self is not WordState.LOCKED


class ImageStatus(str, Enum):
    """Lifecycle of the main challenge image."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Word:
    text: str
    position: int
    state: WordState = WordState.LOCKED
    purchased_by: str | None = None
    purchase_time: datetime | None = None
    guessed_by: dict[str, bool] = field(default_factory=dict)

    @property
    def is_purchased(self) -> bool:
        return self.state.is_purchased

    def is_guessed_by(self, user_id: str) -> bool:
        return self.guessed_by.get(user_id, False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "position": self.position,
            "state": self.state.value,
            "isPurchased": self.state.is_purchased,
            "purchasedBy": self.purchased_by,
            "purchaseTime": _iso(self.purchase_time),
            "isGenerating": self.state is WordState.GENERATING,
            "imageReady": self.state is WordState.READY,
            "generationFailed": self.state is WordState.FAILED,
            "guessedBy": dict(self.guessed_by),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Word:
        return cls(
            text=data["text"],
            position=int(data["position"]),
            state=_word_state_from_dict(data),
            purchased_by=data.get("purchasedBy"),
            purchase_time=_parse(data.get("purchaseTime")),
            guessed_by={k: bool(v) for k, v in (data.get("guessedBy") or {}).items() if v},
        )


@dataclass
class Challenge:
    id: str
    sentence: str
    words: list[Word]
    created_by: str
    prize_amount: int = 0
    image_url: str | None = None
    image_status: ImageStatus = ImageStatus.PENDING
    word_images: dict[int, str] = field(default_factory=dict)
    solved_by: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, sentence: str, created_by: str, prize_amount: int = 0) -> Challenge:
        """Build a fresh challenge with every word locked."""
        words = [Word(text=text, position=i) for i, text in enumerate(rules.split_words(sentence))]
        return cls(
            id=make_id(),
            sentence=sentence,
            words=words,
            created_by=created_by,
            prize_amount=prize_amount,
        )

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def word_price(self) -> int:
        return rules.word_price(self.prize_amount, self.word_count)

    @property
    def is_solved(self) -> bool:
        return self.solved_by is not None

    def has_guessed_all(self, user_id: str) -> bool:
        return all(word.is_guessed_by(user_id) for word in self.words)

    def copy(self) -> Challenge:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sentence": self.sentence,
            "imageUrl": self.image_url,
            "imageStatus": self.image_status.value,
            "prizeAmount": self.prize_amount,
            "wordImages": {str(k): v for k, v in self.word_images.items()},
            "words": [word.to_dict() for word in self.words],
            "createdBy": self.created_by,
            "solvedBy": self.solved_by,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Challenge:
        image_url = data.get("imageUrl") or None
        status = data.get("imageStatus")
        return cls(
            id=data["id"],
            sentence=data["sentence"],
            words=[Word.from_dict(w) for w in data.get("words", [])],
            created_by=data["createdBy"],
            prize_amount=int(data.get("prizeAmount") or 0),
            image_url=image_url,
            image_status=ImageStatus(status) if status else (ImageStatus.READY if image_url else ImageStatus.PENDING),
            word_images={int(k): v for k, v in (data.get("wordImages") or {}).items()},
            solved_by=data.get("solvedBy"),
            is_active=bool(data.get("isActive", True)),
            created_at=_parse(data.get("createdAt")) or utcnow(),
        )


@dataclass(frozen=True)
class UserPurchase:
    """Audit record of a word hint purchase.

    ``access_expires_at`` belongs to the retired timed-access scheme; it is
    read from old records but never set.
    """

    user_id: str
    challenge_id: str
    word_index: int
    purchase_time: datetime
    price: int = 0
    access_expires_at: datetime | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.challenge_id, self.word_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "challengeId": self.challenge_id,
            "wordIndex": self.word_index,
            "purchaseTime": _iso(self.purchase_time),
            "price": self.price,
            "accessExpiresAt": _iso(self.access_expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPurchase:
        return cls(
            user_id=data["userId"],
            challenge_id=data["challengeId"],
            word_index=int(data["wordIndex"]),
            purchase_time=_parse(data.get("purchaseTime")) or utcnow(),
            price=int(data.get("price") or 0),
            access_expires_at=_parse(data.get("accessExpiresAt")),
        )


def _word_state_from_dict(data: dict[str, Any]) -> WordState:
    raw = data.get("state")
    if raw:
        return WordState(raw)
    # Records written before the tagged state only carry the flags.
    if data.get("generationFailed"):
        return WordState.FAILED
    if data.get("imageReady"):
        return WordState.READY
    if data.get("isGenerating"):
        return WordState.GENERATING
    if data.get("isPurchased") or data.get("purchasedBy"):
        return WordState.READY
    return WordState.LOCKED


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec="milliseconds")


def _parse(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "Challenge",
    "ImageStatus",
    "UserPurchase",
    "Word",
    "WordState",
    "make_id",
    "utcnow",
]
