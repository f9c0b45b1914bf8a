"""Adapters for the external services behind the Wordpix engine."""

from _02_adapters.identity import InMemoryIdentityService
from _02_adapters.image_generation import FalImageGenerator, categorize_error
from _02_adapters.json_store import JsonAccountService, JsonChallengeStore, JsonPurchaseStore

__all__ = [
    "FalImageGenerator",
    "InMemoryIdentityService",
    "JsonAccountService",
    "JsonChallengeStore",
    "JsonPurchaseStore",
    "categorize_error",
]
