"""Runtime configuration for the Wordpix service."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from _01_engine import rules

ENV_PREFIX = "WORDPIX_"

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass
class GameConfig:
    """Tunable policy values and service wiring.

    Defaults mirror the constants in :mod:`_01_engine.rules`; everything here
    can be overridden from a YAML file or ``WORDPIX_*`` environment variables.
    """

    starting_balance: int = rules.DEFAULT_STARTING_BALANCE
    max_words: int = rules.MAX_WORDS

    refill_threshold: int = rules.REFILL_THRESHOLD
    refill_amount: int = rules.REFILL_AMOUNT
    refill_interval_seconds: int = rules.REFILL_INTERVAL_SECONDS

    creation_minute_window_seconds: int = rules.CREATION_MINUTE_WINDOW_SECONDS
    creation_minute_max: int = rules.CREATION_MINUTE_MAX
    creation_day_window_seconds: int = rules.CREATION_DAY_WINDOW_SECONDS
    creation_day_max: int = rules.CREATION_DAY_MAX

    # "memory" or "json"
    storage: str = "memory"
    data_dir: str = str(DEFAULT_DATA_DIR)

    image_model: str = "fal-ai/flux/schnell"
    image_size: str = "landscape_4_3"

    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        """Create config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered_data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> GameConfig:
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> GameConfig:
        """Build config from ``WORDPIX_*`` variables on top of the defaults.

        ``WORDPIX_CONFIG`` may point at a YAML file which is loaded first.
        """
        environ = os.environ if environ is None else environ
        config_file = environ.get(f"{ENV_PREFIX}CONFIG")
        config = cls.from_yaml(config_file) if config_file else cls()

        for f in dataclasses.fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            current = getattr(config, f.name)
            if isinstance(current, bool):
                value: Any = raw.strip().lower() in ("1", "true", "yes", "on")
            elif isinstance(current, int):
                value = int(raw)
            else:
                value = raw
            setattr(config, f.name, value)
        return config

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.starting_balance < 0:
            raise ValueError(f"starting_balance must be >= 0, got {self.starting_balance}")
        if not rules.MIN_WORDS <= self.max_words:
            raise ValueError(f"max_words must be >= {rules.MIN_WORDS}, got {self.max_words}")
        if self.refill_threshold < 0:
            raise ValueError(f"refill_threshold must be >= 0, got {self.refill_threshold}")
        if self.refill_amount <= 0:
            raise ValueError(f"refill_amount must be positive, got {self.refill_amount}")
        if self.refill_interval_seconds <= 0:
            raise ValueError(f"refill_interval_seconds must be positive, got {self.refill_interval_seconds}")
        for name in (
            "creation_minute_window_seconds",
            "creation_minute_max",
            "creation_day_window_seconds",
            "creation_day_max",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.storage not in ("memory", "json"):
            raise ValueError(f"storage must be 'memory' or 'json', got {self.storage!r}")


__all__ = ["DEFAULT_DATA_DIR", "ENV_PREFIX", "GameConfig"]
