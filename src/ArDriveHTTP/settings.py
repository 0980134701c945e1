# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.settings",
#   "purpose": "Immutable client configuration backed by pydantic-settings",
#   "sections": [
#     {"id": "client-settings", "name": "ClientSettings", "anchor": "class-client-settings", "kind": "class"},
#     {"id": "build-settings", "name": "build_settings", "anchor": "function-build-settings", "kind": "function"},
#     {"id": "get-settings", "name": "get_settings", "anchor": "function-get-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Client configuration.

Settings are read once at client construction and never mutated afterwards;
every request made through a client shares the same frozen instance. Values
may come from keyword arguments or from ``ARDRIVE_HTTP_*`` environment
variables (for example ``ARDRIVE_HTTP_RETRIES=3``).

Example:
    >>> settings = build_settings(retries=4, retry_delay_ms=0)
    >>> settings.retries
    4
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ArDriveHTTP import __version__
from ArDriveHTTP.errors import ConfigurationError
from ArDriveHTTP.network.policy import (
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    HTTP_CONNECT_TIMEOUT,
    HTTP_RECEIVE_TIMEOUT,
)

logger = logging.getLogger(__name__)

__all__ = ["ClientSettings", "build_settings", "get_settings", "reset_settings"]


class ClientSettings(BaseSettings):
    """Retry, timeout, logging, and placement settings for one client."""

    model_config = SettingsConfigDict(
        env_prefix="ARDRIVE_HTTP_",
        frozen=True,
        extra="ignore",
    )

    retries: int = Field(
        default=DEFAULT_RETRIES,
        ge=0,
        le=100,
        description="Maximum retries per logical request",
    )
    retry_delay_ms: int = Field(
        default=DEFAULT_RETRY_DELAY_MS,
        ge=0,
        description="Base backoff delay in milliseconds (grows by 1.5x per retry)",
    )
    no_logs: bool = Field(
        default=False,
        description="Suppress retry/error diagnostics and request logging hooks",
    )
    connect_timeout_s: float = Field(
        default=HTTP_CONNECT_TIMEOUT,
        gt=0.0,
        le=300.0,
        description="Connect timeout per attempt in seconds",
    )
    receive_timeout_s: float = Field(
        default=HTTP_RECEIVE_TIMEOUT,
        gt=0.0,
        le=600.0,
        description="Read/write timeout per attempt in seconds",
    )
    follow_redirects: bool = Field(default=True, description="Follow 3xx redirects")
    isolated_execution: bool = Field(
        default=False,
        description="Serve eligible requests from an isolated worker process",
    )
    offload_workers: int = Field(
        default=4,
        ge=1,
        le=256,
        description="Thread pool size used by async entry points",
    )
    user_agent: str = Field(
        default=f"ardrive-http/{__version__}",
        description="User-Agent header value",
    )

    @field_validator("user_agent")
    @classmethod
    def _strip_user_agent(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("user_agent must not be empty")
        return value


def build_settings(**overrides: Any) -> ClientSettings:
    """Construct settings, dropping ``None`` overrides and normalising errors.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return ClientSettings(**values)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


_settings: Optional[ClientSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> ClientSettings:
    """Return the process-wide default settings (environment only)."""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = build_settings()
                logger.debug("Default settings loaded", extra={"settings": _settings.model_dump()})
    return _settings


def reset_settings() -> None:
    """Forget cached defaults (primarily for tests)."""
    global _settings
    with _settings_lock:
        _settings = None
