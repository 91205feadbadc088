"""Tests for environment-driven configuration."""

import pytest

from sammy.core.config import EngineConfig
from sammy.shell.config import load_engine_config, load_firestore_config


class TestLoadEngineConfig:
    """Tests for load_engine_config."""

    def test_defaults(self):
        assert load_engine_config({}) == EngineConfig()

    def test_overrides(self):
        config = load_engine_config({
            "SAMMY_OVERWRITE_LOGGED_DAYS": "true",
            "SAMMY_MAX_DAILY_TARGET": "20",
            "SAMMY_ALL_RANGE_MAX_DAYS": "365",
        })
        assert config.overwrite_logged_days is True
        assert config.max_daily_target == 20
        assert config.all_range_max_days == 365
        assert config.default_range_days == 90

    def test_falsey_flag(self):
        assert load_engine_config({"SAMMY_OVERWRITE_LOGGED_DAYS": "0"}).overwrite_logged_days is False

    def test_empty_value_uses_default(self):
        assert load_engine_config({"SAMMY_MAX_DAILY_TARGET": ""}).max_daily_target == 50

    def test_bad_integer(self):
        with pytest.raises(ValueError):
            load_engine_config({"SAMMY_MAX_DAILY_TARGET": "lots"})


class TestLoadFirestoreConfig:
    """Tests for load_firestore_config."""

    def test_defaults(self):
        config = load_firestore_config({})
        assert config.project_id is None
        assert config.database == "sammy"

    def test_overrides(self):
        config = load_firestore_config(
            {"GOOGLE_CLOUD_PROJECT": "sammy-prod", "FIRESTORE_DATABASE": "(default)"}
        )
        assert config.project_id == "sammy-prod"
        assert config.database == "(default)"
