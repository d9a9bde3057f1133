"""
Configuration Management for the Attribute Synchronization Engine

Provides validated configuration with sensible defaults.
Supports environment variable overrides.

Design:
- Immutable after validation
- Fail-fast on invalid configuration
- Type-safe with dataclasses
- Sheet schemas are passed explicitly, never read from module globals
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from sheetsync.core.types import Result, Ok, Err
from sheetsync.core import constants as C


@dataclass(frozen=True)
class SessionConfig:
    """Synchronization session behaviour."""

    silent_writes: bool = True
    max_id_attempts: int = C.MAX_ID_ATTEMPTS
    skip_empty_writes: bool = False


@dataclass(frozen=True)
class TriggerConfig:
    """Trigger coordination behaviour."""

    button_throttle_ms: int = C.BUTTON_THROTTLE_MS


@dataclass(frozen=True)
class HostConfig:
    """In-memory host simulation."""

    latency_ms: float = 0.0


@dataclass(frozen=True)
class RedisHostConfig:
    """Redis-backed host configuration."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    key_prefix: str = C.REDIS_KEY_PREFIX
    sheet_id: str = "default"
    socket_timeout_ms: int = 5 * C.SECOND_MS

    @property
    def hash_key(self) -> str:
        """Redis hash holding every field of the sheet."""
        return f"{self.key_prefix}:{self.sheet_id}"

    def get_connection_kwargs(self) -> dict:
        """Keyword arguments for redis.asyncio.Redis."""
        return {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "password": self.password,
            "socket_timeout": self.socket_timeout_ms / 1000,
            "decode_responses": True,
        }


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration."""

    log_level: str = "INFO"
    log_json: bool = True


@dataclass(frozen=True)
class SheetSyncConfig:
    """Root configuration."""

    session: SessionConfig = field(default_factory=SessionConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    host: HostConfig = field(default_factory=HostConfig)
    redis: RedisHostConfig = field(default_factory=RedisHostConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[SheetSyncConfig, str]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with SHEETSYNC_.
        Example: SHEETSYNC_BUTTON_THROTTLE_MS, SHEETSYNC_REDIS_HOST
        """
        try:
            session = SessionConfig(
                silent_writes=_env_bool("SHEETSYNC_SILENT_WRITES", True),
                max_id_attempts=int(
                    os.getenv("SHEETSYNC_MAX_ID_ATTEMPTS", str(C.MAX_ID_ATTEMPTS))
                ),
                skip_empty_writes=_env_bool("SHEETSYNC_SKIP_EMPTY_WRITES", False),
            )

            triggers = TriggerConfig(
                button_throttle_ms=int(
                    os.getenv("SHEETSYNC_BUTTON_THROTTLE_MS", str(C.BUTTON_THROTTLE_MS))
                ),
            )

            host = HostConfig(
                latency_ms=float(os.getenv("SHEETSYNC_HOST_LATENCY_MS", "0")),
            )

            redis = RedisHostConfig(
                host=os.getenv("SHEETSYNC_REDIS_HOST", "localhost"),
                port=int(os.getenv("SHEETSYNC_REDIS_PORT", "6379")),
                db=int(os.getenv("SHEETSYNC_REDIS_DB", "0")),
                password=os.getenv("SHEETSYNC_REDIS_PASSWORD") or None,
                sheet_id=os.getenv("SHEETSYNC_SHEET_ID", "default"),
            )

            observability = ObservabilityConfig(
                log_level=os.getenv("SHEETSYNC_LOG_LEVEL", "INFO").upper(),
                log_json=_env_bool("SHEETSYNC_LOG_JSON", True),
            )

            return Ok(cls(
                session=session,
                triggers=triggers,
                host=host,
                redis=redis,
                observability=observability,
            ))
        except (ValueError, TypeError) as e:
            return Err(f"Configuration error: {e}")

    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if self.session.max_id_attempts < 1:
            return Err("max_id_attempts must be >= 1")
        if self.triggers.button_throttle_ms < 0:
            return Err("button_throttle_ms cannot be negative")
        if self.host.latency_ms < 0:
            return Err("host latency_ms cannot be negative")
        if not 0 < self.redis.port < 65536:
            return Err(f"Invalid redis port: {self.redis.port}")
        if self.observability.log_level not in {
            "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
        }:
            return Err(f"Unknown log level: {self.observability.log_level}")
        return Ok(None)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
