"""Tests for GameConfig loading and validation."""

import pytest
import yaml

from _01_engine import rules
from _01_engine.config import GameConfig


def test_defaults_match_rules():
    config = GameConfig()
    assert config.starting_balance == rules.DEFAULT_STARTING_BALANCE
    assert config.refill_threshold == rules.REFILL_THRESHOLD
    assert config.creation_day_max == rules.CREATION_DAY_MAX
    assert config.storage == "memory"
    config.validate()


def test_from_dict_ignores_unknown_keys():
    config = GameConfig.from_dict({"starting_balance": 250, "shiny": True})
    assert config.starting_balance == 250
    assert not hasattr(config, "shiny")


def test_from_yaml(tmp_path):
    path = tmp_path / "wordpix.yaml"
    path.write_text(yaml.safe_dump({"storage": "json", "data_dir": str(tmp_path), "refill_amount": 7}))

    config = GameConfig.from_yaml(path)

    assert config.storage == "json"
    assert config.data_dir == str(tmp_path)
    assert config.refill_amount == 7


def test_from_yaml_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert GameConfig.from_yaml(path) == GameConfig()


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        GameConfig.from_yaml(tmp_path / "absent.yaml")


def test_from_env_overrides_yaml(tmp_path):
    path = tmp_path / "wordpix.yaml"
    path.write_text(yaml.safe_dump({"starting_balance": 40, "log_level": "DEBUG"}))
    environ = {
        "WORDPIX_CONFIG": str(path),
        "WORDPIX_STARTING_BALANCE": "60",
        "WORDPIX_LOG_JSON": "true",
        "WORDPIX_IMAGE_MODEL": "fal-ai/flux/dev",
        "UNRELATED": "x",
    }

    config = GameConfig.from_env(environ)

    assert config.starting_balance == 60
    assert config.log_level == "DEBUG"
    assert config.log_json is True
    assert config.image_model == "fal-ai/flux/dev"


def test_from_env_reads_os_environ(monkeypatch):
    monkeypatch.setenv("WORDPIX_CREATION_MINUTE_MAX", "5")
    monkeypatch.delenv("WORDPIX_CONFIG", raising=False)
    assert GameConfig.from_env().creation_minute_max == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"starting_balance": -1},
        {"max_words": 0},
        {"refill_amount": 0},
        {"refill_interval_seconds": 0},
        {"creation_day_max": 0},
        {"storage": "redis"},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ValueError):
        GameConfig(**overrides).validate()
