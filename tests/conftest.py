"""
Pytest configuration and fixtures for the Wordpix test suite.

Provides a controllable clock, a scripted image generator and a factory for
fully wired engines backed by in-memory stores.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from _01_engine.accounts import InMemoryAccountService
from _01_engine.collaborators import ImageGenerator
from _01_engine.engine import ChallengeEngine
from _01_engine.exceptions import ImageGenerationError
from _01_engine.ledger import CreditLedger
from _01_engine.rate_limiter import SlidingWindowRateLimiter
from _01_engine.store import InMemoryChallengeStore, InMemoryPurchaseStore

FOX_SENTENCE = "a red fox jumps over"


class FakeClock:
    """Settable clock usable as a datetime or a float-seconds source."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def time(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeImageGenerator(ImageGenerator):
    """Records prompts; returns numbered URLs or fails with ``fail_kind``."""

    def __init__(self, fail_kind: str | None = None):
        self.fail_kind = fail_kind
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail_kind is not None:
            raise ImageGenerationError(self.fail_kind, f"scripted {self.fail_kind} failure")
        return f"https://images.test/{len(self.prompts)}.png"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return FakeImageGenerator()


@pytest.fixture
def accounts():
    return InMemoryAccountService(starting_balance=100)


@pytest.fixture
def ledger(accounts, clock):
    return CreditLedger(accounts, clock=clock)


@pytest.fixture
def engine(accounts, ledger, clock, generator):
    """Engine over in-memory stores with the scripted generator."""
    return ChallengeEngine(
        InMemoryChallengeStore(),
        InMemoryPurchaseStore(),
        ledger,
        rate_limiter=SlidingWindowRateLimiter(clock=clock.time),
        image_generator=generator,
        clock=clock,
    )


@pytest.fixture
def fox_challenge(engine):
    """The five-word challenge with a 10 GC prize, created by ``creator``."""
    return engine.create_challenge(FOX_SENTENCE, "creator", prize_amount=10)


@pytest.fixture
def generator_factory():
    """Build extra scripted generators, e.g. ``generator_factory(fail_kind="quota")``."""
    return FakeImageGenerator
