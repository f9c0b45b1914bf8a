"""Service wiring for the Wordpix web API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from _01_engine.accounts import AccountService, InMemoryAccountService
from _01_engine.collaborators import IdentityService, ImageGenerator
from _01_engine.config import GameConfig
from _01_engine.engine import ChallengeEngine
from _01_engine.ledger import CreditLedger
from _01_engine.rate_limiter import SlidingWindowRateLimiter
from _01_engine.store import ChallengeStore, InMemoryChallengeStore, InMemoryPurchaseStore, PurchaseStore
from _02_adapters.identity import InMemoryIdentityService
from _02_adapters.image_generation import FalImageGenerator
from _02_adapters.json_store import JsonAccountService, JsonChallengeStore, JsonPurchaseStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs."""

    config: GameConfig
    engine: ChallengeEngine
    ledger: CreditLedger
    identity: IdentityService


def build_services(
    config: GameConfig | None = None,
    *,
    image_generator: ImageGenerator | None = None,
    identity: IdentityService | None = None,
    accounts: AccountService | None = None,
) -> Services:
    """Assemble stores, ledger and engine from ``config``."""
    config = config if config is not None else GameConfig()
    config.validate()

    challenges: ChallengeStore
    purchases: PurchaseStore
    if config.storage == "json":
        root = Path(config.data_dir)
        challenges = JsonChallengeStore(root)
        purchases = JsonPurchaseStore(root)
        if accounts is None:
            accounts = JsonAccountService(root, starting_balance=config.starting_balance)
        logger.info("Using JSON storage in %s", root)
    else:
        challenges = InMemoryChallengeStore()
        purchases = InMemoryPurchaseStore()
        if accounts is None:
            accounts = InMemoryAccountService(starting_balance=config.starting_balance)

    ledger = CreditLedger(
        accounts,
        refill_threshold=config.refill_threshold,
        refill_amount=config.refill_amount,
        refill_interval_seconds=config.refill_interval_seconds,
    )
    rate_limiter = SlidingWindowRateLimiter(
        minute_window_seconds=config.creation_minute_window_seconds,
        minute_max=config.creation_minute_max,
        day_window_seconds=config.creation_day_window_seconds,
        day_max=config.creation_day_max,
    )
    if image_generator is None:
        image_generator = FalImageGenerator(config.image_model, image_size=config.image_size)
    logger.info("Image generator: %s", image_generator.name)

    engine = ChallengeEngine(
        challenges,
        purchases,
        ledger,
        rate_limiter=rate_limiter,
        image_generator=image_generator,
        max_words=config.max_words,
    )
    return Services(
        config=config,
        engine=engine,
        ledger=ledger,
        identity=identity if identity is not None else InMemoryIdentityService(),
    )


# Services reference - set by app factory
_services: Services | None = None


def set_services(services: Services) -> None:
    """Set the services used by every router."""
    global _services
    _services = services


def get_services() -> Services:
    """Get the configured services."""
    if _services is None:
        raise RuntimeError("Services not initialized")
    return _services


__all__ = ["Services", "build_services", "get_services", "set_services"]
