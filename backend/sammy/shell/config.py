"""Configuration - Engine and storage settings read from the environment."""

import os
from typing import Mapping

from ..core.config import EngineConfig
from .firestore_client import FirestoreConfig


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def load_engine_config(environ: Mapping[str, str] | None = None) -> EngineConfig:
    """Build EngineConfig from SAMMY_* environment variables.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        EngineConfig with defaults for anything unset
    """
    env = os.environ if environ is None else environ
    defaults = EngineConfig()
    return EngineConfig(
        overwrite_logged_days=_env_bool(
            env.get("SAMMY_OVERWRITE_LOGGED_DAYS"), defaults.overwrite_logged_days
        ),
        max_daily_target=_env_int(env.get("SAMMY_MAX_DAILY_TARGET"), defaults.max_daily_target),
        max_typical_value=_env_int(env.get("SAMMY_MAX_TYPICAL_VALUE"), defaults.max_typical_value),
        default_range_days=_env_int(env.get("SAMMY_DEFAULT_RANGE_DAYS"), defaults.default_range_days),
        all_range_max_days=_env_int(env.get("SAMMY_ALL_RANGE_MAX_DAYS"), defaults.all_range_max_days),
    )


def load_firestore_config(environ: Mapping[str, str] | None = None) -> FirestoreConfig:
    """Build FirestoreConfig from GOOGLE_CLOUD_PROJECT and FIRESTORE_DATABASE."""
    env = os.environ if environ is None else environ
    return FirestoreConfig(
        project_id=env.get("GOOGLE_CLOUD_PROJECT") or None,
        database=env.get("FIRESTORE_DATABASE", "sammy"),
    )
