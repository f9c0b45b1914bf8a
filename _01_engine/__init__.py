"""Core rules, ledger and rate limiting for the Wordpix challenge game."""

from . import accounts, collaborators, config, engine, exceptions, ledger, rate_limiter, rules, state, store

__all__ = [
    "accounts",
    "collaborators",
    "config",
    "engine",
    "exceptions",
    "ledger",
    "rate_limiter",
    "rules",
    "state",
    "store",
]
