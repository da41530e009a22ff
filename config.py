"""
config.py - Process configuration loaded once from the environment.

`load_settings()` reads a `.env` file (if present) and the process
environment, validates it, and returns an immutable `Settings`. The value
is handed explicitly to `ReceiptStore` and `create_app`; nothing reads the
environment after startup.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from errors import ConfigError
from logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_REDIS_ADDR = "redis:6379"
DEFAULT_SERVER_PORT = "8080"
DEFAULT_REQUEST_TIMEOUT_MS = 500


class Settings(BaseModel):
    """Static service configuration. Durations are in seconds."""

    model_config = ConfigDict(frozen=True)

    redis_addr: str = DEFAULT_REDIS_ADDR
    server_port: int = Field(default=int(DEFAULT_SERVER_PORT), gt=0, lt=65536)
    store_timeout: float = Field(..., gt=0, description="Bound on a single store attempt.")
    ttl: int = Field(..., gt=0, description="Lifetime of a stored score.")
    max_retries: int = Field(..., ge=1, description="Attempts per store operation.")
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_MS / 1000.0,
        gt=0,
        description="Overall budget for one HTTP request.",
    )

    @property
    def redis_host(self) -> str:
        host, _, _ = self.redis_addr.rpartition(":")
        return host or self.redis_addr

    @property
    def redis_port(self) -> int:
        _, sep, port = self.redis_addr.rpartition(":")
        if not sep or not port.isdigit():
            return 6379
        return int(port)


def _require_int(env: Mapping[str, str], name: str, default: Optional[str] = None) -> int:
    raw = env.get(name, "").strip() or default
    if raw is None:
        raise ConfigError(f"{name} is required")
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Error converting {name} env to int: {raw!r}") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        try:
            load_dotenv()
        except UnicodeDecodeError:
            # Fallback for legacy Windows-encoded .env files.
            load_dotenv(encoding="cp1252")
        env = os.environ

    try:
        settings = Settings(
            redis_addr=env.get("REDIS_ADDR", "").strip() or DEFAULT_REDIS_ADDR,
            server_port=_require_int(env, "SERVER_PORT", DEFAULT_SERVER_PORT),
            store_timeout=_require_int(env, "DB_TIMEOUT_IN_MS") / 1000.0,
            ttl=_require_int(env, "REDIS_TTL_IN_S"),
            max_retries=_require_int(env, "MAX_DB_CONN_RETRIES"),
            request_timeout=_require_int(
                env, "REQUEST_TIMEOUT_IN_MS", str(DEFAULT_REQUEST_TIMEOUT_MS)
            )
            / 1000.0,
        )
    except ValueError as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    logger.info(
        "settings_loaded | redis_addr=%s | store_timeout=%.3fs | ttl=%ss | max_retries=%s | request_timeout=%.3fs",
        settings.redis_addr,
        settings.store_timeout,
        settings.ttl,
        settings.max_retries,
        settings.request_timeout,
    )
    return settings
