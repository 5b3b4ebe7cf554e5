"""Settings loaded from environment variables (+ optional .env).

The database location is the only required value; everything else has a
default suitable for interactive use.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

ENV_PREFIX = "TASK_MANAGER"
LEGACY_DATABASE_URL_ENV = "DATABASE_URL"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v.strip()
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


def normalize_database_url(raw: str) -> str:
    """Accept either a SQLAlchemy URL or a bare path to a SQLite file."""
    raw = raw.strip()
    if not raw:
        raise ConfigError("Database URL is empty")
    if "://" in raw:
        return raw
    return f"sqlite:///{Path(raw).expanduser()}"


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    echo_sql: bool = False


def get_settings() -> Settings:
    # Values already present in the environment win over .env.
    load_dotenv(find_dotenv(usecwd=True), override=False)

    raw_url = _first_env(_k("DATABASE_URL"), LEGACY_DATABASE_URL_ENV)
    if raw_url is None:
        raise ConfigError(
            f"{_k('DATABASE_URL')} (or {LEGACY_DATABASE_URL_ENV}) must be set"
        )

    return Settings(
        database_url=normalize_database_url(raw_url),
        log_level=(_first_env(_k("LOG_LEVEL"), default="WARNING") or "WARNING").upper(),
        log_file=_env_path(_k("LOG_FILE")),
        echo_sql=_env_bool(_k("ECHO_SQL"), False),
    )
