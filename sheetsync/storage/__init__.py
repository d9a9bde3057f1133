"""
Storage Module: Host Store Abstraction Layer
============================================

Provides:
- HostStore protocol and TriggerEvent context
- Event subscription and dispatch shared by backends
- In-memory host for development and testing
- Redis host for persistent sheets
- Row id generation
- Factory function for backend selection

Example:
    >>> # Development (in-memory)
    >>> host = create_host_store()

    >>> # Persistent (Redis)
    >>> host = create_host_store(RedisHostConfig(sheet_id="hero-1"))
    >>> await host.connect()
"""

from __future__ import annotations

from typing import Any, Optional, TYPE_CHECKING

from sheetsync.core.config import HostConfig, RedisHostConfig
from sheetsync.storage.protocols import (
    EventHandler,
    HostStore,
    TranslationLookup,
    TriggerEvent,
)
from sheetsync.storage.events import EventDispatcher
from sheetsync.storage.backends import HostStats, InMemoryHostStore
from sheetsync.storage.row_ids import (
    MonotonicRowIds,
    encode_time,
    generate_row_id,
    is_valid_row_id,
)

# Lazy import for the Redis backend
if TYPE_CHECKING:
    from sheetsync.storage.redis_store import RedisHostStore


def create_host_store(
    config: Optional[RedisHostConfig] = None,
    host_config: Optional[HostConfig] = None,
    translations: Optional[dict[str, str]] = None,
) -> Any:
    """
    Create a host store.

    Args:
        config: Redis configuration; when None an in-memory host is built.
        host_config: Latency settings for the in-memory host.
        translations: Localization table.

    Returns:
        InMemoryHostStore: If config is None.
        RedisHostStore: If config is provided (call connect() before use).
    """
    if config is not None:
        from sheetsync.storage.redis_store import RedisHostStore
        return RedisHostStore(config, translations=translations)

    return InMemoryHostStore(translations=translations, config=host_config)


__all__ = [
    "EventHandler",
    "HostStore",
    "TranslationLookup",
    "TriggerEvent",
    "EventDispatcher",
    "HostStats",
    "InMemoryHostStore",
    "encode_time",
    "MonotonicRowIds",
    "generate_row_id",
    "is_valid_row_id",
    "create_host_store",
]
