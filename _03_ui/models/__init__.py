"""Pydantic models for the Wordpix web API."""

from _03_ui.models.requests import (
    CreateChallengeRequest,
    GuessRequest,
    GuessWordRequest,
    PurchaseRequest,
)

__all__ = [
    "CreateChallengeRequest",
    "GuessRequest",
    "GuessWordRequest",
    "PurchaseRequest",
]
