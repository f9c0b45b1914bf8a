"""Custom exception classes for the Wordpix challenge engine."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any


class GameError(Exception):
    """Base exception for all rule violations raised by the engine."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured body handed back to callers."""
        return {"error": self.message, "code": self.code}


class ValidationError(GameError):
    """Raised when input is malformed or out of range."""

    status_code = 400
    code = "validation_error"


class ChallengeNotFoundError(GameError):
    """Raised when a challenge id does not resolve to a record."""

    status_code = 404
    code = "not_found"

    def __init__(self, challenge_id: str) -> None:
        self.challenge_id = challenge_id
        super().__init__("Challenge not found")


class InsufficientFundsError(GameError):
    """Raised when a balance cannot cover a debit."""

    status_code = 400
    code = "insufficient_funds"

    def __init__(self, user_id: str, required: int, balance: int) -> None:
        self.user_id = user_id
        self.required = required
        self.balance = balance
        super().__init__(f"Insufficient credits: need {required} GC, have {balance} GC")

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body.update({"required": self.required, "balance": self.balance})
        return body


class AlreadyPurchasedError(GameError):
    """Raised when a word hint has already been bought by someone."""

    status_code = 400
    code = "already_purchased"

    def __init__(self, word_index: int, purchased_by: str | None) -> None:
        self.word_index = word_index
        self.purchased_by = purchased_by
        super().__init__("Word already purchased")

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["purchasedBy"] = self.purchased_by
        return body


class AlreadyGuessedError(GameError):
    """Raised when a user re-guesses a word they already got right."""

    status_code = 400
    code = "already_guessed"

    def __init__(self, word_index: int) -> None:
        self.word_index = word_index
        super().__init__("You already guessed this word correctly")


class RateLimitedError(GameError):
    """Raised when an identifier exceeds one of its request windows."""

    status_code = 429
    code = "rate_limited"

    def __init__(
        self,
        message: str,
        *,
        minute_remaining: int | None = None,
        day_remaining: int | None = None,
        reset_time: datetime | None = None,
    ) -> None:
        self.minute_remaining = minute_remaining
        self.day_remaining = day_remaining
        self.reset_time = reset_time
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.minute_remaining is not None:
            body["minuteRemaining"] = self.minute_remaining
        if self.day_remaining is not None:
            body["dayRemaining"] = self.day_remaining
        if self.reset_time is not None:
            body["resetTime"] = self.reset_time.isoformat()
        return body


class ExternalServiceError(GameError):
    """Raised when a collaborator service fails."""

    status_code = 500
    code = "external_service_error"


class ImageGenerationError(ExternalServiceError):
    """Raised by image generators, categorised by failure kind."""

    KINDS = ("auth", "quota", "timeout", "safety", "unknown")

    def __init__(self, kind: str, message: str = "Failed to generate image") -> None:
        if kind not in self.KINDS:
            kind = "unknown"
        self.kind = kind
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["kind"] = self.kind
        return body


__all__ = [
    "AlreadyGuessedError",
    "AlreadyPurchasedError",
    "ChallengeNotFoundError",
    "ExternalServiceError",
    "GameError",
    "ImageGenerationError",
    "InsufficientFundsError",
    "RateLimitedError",
    "ValidationError",
]
