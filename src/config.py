"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating values and providing actionable error messages.
"""

import os
from pathlib import Path
from typing import TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

_T = TypeVar("_T", int, float)

# Mounted volume in deployment; falls back to ./data for local development.
_VOLUME_DIR = Path("/data")
_DB_FILENAME = "analytics.duckdb"


def _get_env_str(name: str, default: str) -> str:
    """Read a string env var with a default (blank counts as unset)."""
    value = os.getenv(name, "").strip()
    return value or default


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


def default_db_path() -> Path:
    """Pick the database file location when `PIXEL_DB_PATH` is unset."""
    if _VOLUME_DIR.exists():
        return _VOLUME_DIR / _DB_FILENAME
    return Path("data") / _DB_FILENAME


class StoreConfig(BaseModel):
    """Configuration for the on-disk event log."""

    db_path: Path = Field(default_factory=default_db_path, description="DuckDB database file")
    write_timeout: float = Field(default=5.0, description="Max wait for the write lock (seconds)")
    read_timeout: float = Field(default=5.0, description="Max wait for a reader slot (seconds)")
    max_concurrent_reads: int = Field(default=8, description="Readers allowed at once")

    @field_validator("write_timeout", "read_timeout")
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be positive so no caller blocks forever."""
        if v <= 0:
            raise ValueError(f"timeouts must be > 0 seconds. Got: {v}")
        return v

    @field_validator("max_concurrent_reads")
    def validate_max_concurrent_reads(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"PIXEL_MAX_CONCURRENT_READS must be >= 1. Got: {v}")
        return v


class StatsConfig(BaseModel):
    """Configuration for the stats query."""

    default_limit: int = Field(default=10, description="Recent events returned when no limit is given")
    max_limit: int = Field(default=500, description="Upper bound on any requested limit")

    @model_validator(mode="after")
    def validate_limits(self) -> "StatsConfig":
        """Require 0 <= default_limit <= max_limit."""
        if self.default_limit < 0:
            raise ValueError(f"PIXEL_DEFAULT_LIMIT must be >= 0. Got: {self.default_limit}")
        if self.max_limit < self.default_limit:
            raise ValueError(
                f"PIXEL_MAX_LIMIT ({self.max_limit}) must be >= PIXEL_DEFAULT_LIMIT ({self.default_limit})."
            )
        return self


class ServerConfig(BaseModel):
    """Configuration for the HTTP server process."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")
    log_level: str = Field(default="INFO", description="Root logging level")
    access_log: bool = Field(default=False, description="Emit per-request access logs")

    @field_validator("port")
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"PIXEL_PORT must be between 1 and 65535. Got: {v}")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"PIXEL_LOG_LEVEL must be a logging level name. Got: {v!r}")
        return level


class Config(BaseModel):
    """Top-level application configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig, description="Event log configuration")
    stats: StatsConfig = Field(default_factory=StatsConfig, description="Stats query configuration")
    server: ServerConfig = Field(default_factory=ServerConfig, description="HTTP server configuration")


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when a value is malformed.
    """
    dotenv.load_dotenv()

    db_path = os.getenv("PIXEL_DB_PATH", "").strip()
    store = StoreConfig(
        db_path=Path(db_path) if db_path else default_db_path(),
        write_timeout=_get_env_number("PIXEL_WRITE_TIMEOUT", 5.0, float),
        read_timeout=_get_env_number("PIXEL_READ_TIMEOUT", 5.0, float),
        max_concurrent_reads=_get_env_number("PIXEL_MAX_CONCURRENT_READS", 8, int),
    )
    stats = StatsConfig(
        default_limit=_get_env_number("PIXEL_DEFAULT_LIMIT", 10, int),
        max_limit=_get_env_number("PIXEL_MAX_LIMIT", 500, int),
    )
    server = ServerConfig(
        host=_get_env_str("PIXEL_HOST", "0.0.0.0"),
        port=_get_env_number("PIXEL_PORT", 8080, int),
        log_level=_get_env_str("PIXEL_LOG_LEVEL", "INFO"),
        access_log=_get_env_bool("PIXEL_ACCESS_LOG", False),
    )
    return Config(store=store, stats=stats, server=server)
