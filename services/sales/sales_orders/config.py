"""
Sales Orders: configuration

Reads the process environment (after loading a .env file) into an immutable
`Settings` object. Backend selection happens here, once; the resulting
settings are handed to `Database` explicitly.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

from .errors import ConfigurationError


class DbType(str, Enum):
    POSTGRES = "postgres"
    SQLITE = "sqlite"


_DB_TYPE_ALIASES = {
    "": DbType.SQLITE,
    "sqlite": DbType.SQLITE,
    "pg": DbType.POSTGRES,
    "postgres": DbType.POSTGRES,
    "postgresql": DbType.POSTGRES,
}

DEFAULT_SQLITE_PATH = "northwind.sqlite"
DEFAULT_TRANSACTION_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    db_type: DbType = DbType.SQLITE
    database_url: str = ""
    sqlite_path: str = DEFAULT_SQLITE_PATH
    transaction_timeout: float = DEFAULT_TRANSACTION_TIMEOUT
    echo: bool = False
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.transaction_timeout <= 0:
            raise ConfigurationError(
                f"transaction timeout must be positive, got {self.transaction_timeout}"
            )
        if self.db_type is DbType.POSTGRES and not self.database_url:
            raise ConfigurationError("DATABASE_URL is required when DB_TYPE=pg")

    @property
    def url(self) -> str:
        """SQLAlchemy URL for the selected backend."""
        if self.db_type is DbType.POSTGRES:
            return _asyncpg_url(self.database_url)
        return f"sqlite+aiosqlite:///{self.sqlite_path}"


def _asyncpg_url(raw: str) -> str:
    raw = raw.strip()
    for prefix in ("postgres://", "postgresql://"):
        if raw.startswith(prefix):
            return "postgresql+asyncpg://" + raw[len(prefix):]
    return raw


def _parse_db_type(raw: str) -> DbType:
    try:
        return _DB_TYPE_ALIASES[raw.strip().lower()]
    except KeyError:
        raise ConfigurationError(f"Unknown DB_TYPE: {raw!r}") from None


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_TRANSACTION_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"DB_TRANSACTION_TIMEOUT is not a number: {raw!r}") from None


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build settings from the environment.

    When `env` is omitted the .env file is loaded into `os.environ` first.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        db_type=_parse_db_type(env.get("DB_TYPE", "")),
        database_url=env.get("DATABASE_URL", ""),
        sqlite_path=env.get("SQLITE_PATH", DEFAULT_SQLITE_PATH),
        transaction_timeout=_parse_timeout(env.get("DB_TRANSACTION_TIMEOUT")),
        echo=env.get("DB_ECHO", "").strip().lower() in ("1", "true", "yes", "on"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
