"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


SUPPORTED_STRATEGIES = ("runtime", "database")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    seed_demo_data: bool
    default_strategy: str
    host: str
    port: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests call `cache_clear()`."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Sales Manager Availability"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(os.getenv("DATABASE_PATH", "data/availability.db")),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        default_strategy=os.getenv("AVAILABILITY_STRATEGY", "runtime").lower(),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3000")),
    )
