"""
Redis Host Store
================

Redis/Valkey implementation of the HostStore protocol. Every field of
one sheet lives in a single hash, so a batched read is one HMGET and a
batched write is one MULTI/EXEC pipeline.

Layout:
-------
    <key_prefix>:<sheet_id>   HASH   field key -> string value

Algorithmic Complexity:
-----------------------
| Operation              | Time     | Notes                          |
|------------------------|----------|--------------------------------|
| read                   | O(k)     | One HMGET                      |
| write                  | O(k)     | HMGET + HSET in one pipeline   |
| list_group_member_ids  | O(N)     | HKEYS, N = fields in the sheet |

Events:
-------
Change events are dispatched in-process for writes made through this
store. Writes made by other processes are not observed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

from sheetsync.core import constants as C
from sheetsync.core.config import RedisHostConfig
from sheetsync.core.errors import StorageError
from sheetsync.core.types import Result, Ok, Err, RowKey, coerce_value, normalize_section
from sheetsync.storage.events import EventDispatcher
from sheetsync.storage.protocols import EventHandler, TriggerEvent
from sheetsync.storage.row_ids import generate_row_id

# Lazy import: redis is only needed once connect() runs
if TYPE_CHECKING:
    import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisHostStore:
    """
    Redis-backed host store.

    Usage:
        store = RedisHostStore(RedisHostConfig(sheet_id="hero-1"))
        result = await store.connect()
        if result.is_err():
            ...
        values = await store.read(["name", "version"])
    """

    __slots__ = (
        "_config",
        "_client",
        "_connected",
        "_dispatcher",
        "_translations",
        "_id_factory",
    )

    def __init__(
        self,
        config: Optional[RedisHostConfig] = None,
        client: Optional[Any] = None,
        translations: Optional[Mapping[str, str]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        """
        Args:
            config: Connection and key layout settings
            client: Pre-built redis.asyncio.Redis (or compatible) client;
                when given, connect() only pings it
            translations: Localization table served by translate()
            id_factory: Row id generator (default: generate_row_id)
        """
        self._config = config or RedisHostConfig()
        self._client: Optional["aioredis.Redis"] = client
        self._connected = False
        self._dispatcher = EventDispatcher()
        self._translations = dict(translations or {})
        self._id_factory = id_factory or generate_row_id

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> Result[None, StorageError]:
        """
        Create the client if needed and verify it answers PING.

        Returns:
            Ok(None) on success, Err(StorageError) on failure.
        """
        try:
            if self._client is None:
                import redis.asyncio as aioredis
                self._client = aioredis.Redis(**self._config.get_connection_kwargs())

            await self._client.ping()
            self._connected = True
            logger.info(
                f"Connected to Redis at {self._config.host}:{self._config.port}, "
                f"sheet hash {self._config.hash_key}"
            )
            return Ok(None)

        except Exception as e:
            logger.error(f"Redis connection failed: {e}")
            return Err(StorageError.connection_failed("RedisHostStore", e))

    async def close(self) -> None:
        """Release the client connection pool."""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    # -------------------------------------------------------------------------
    # HostStore Implementation
    # -------------------------------------------------------------------------

    async def read(
        self,
        keys: Sequence[str],
    ) -> Result[dict[str, str], StorageError]:
        keys = list(keys)
        if not self._connected:
            return Err(StorageError.not_connected("RedisHostStore"))
        if not keys:
            return Ok({})

        try:
            values = await self._client.hmget(self._config.hash_key, keys)
        except Exception as e:
            logger.error(f"Redis HMGET failed: {e}")
            return Err(StorageError.read_failed(keys, cause=e))

        return Ok({
            key: value
            for key, value in zip(keys, values)
            if value is not None
        })

    async def write(
        self,
        values: Mapping[str, str],
        silent: bool = False,
    ) -> Result[None, StorageError]:
        if not self._connected:
            return Err(StorageError.not_connected("RedisHostStore"))

        mapping = {key: coerce_value(value) for key, value in values.items()}
        keys = list(mapping)
        if not mapping:
            return Ok(None)

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hmget(self._config.hash_key, keys)
                pipe.hset(self._config.hash_key, mapping=mapping)
                previous_values, _ = await pipe.execute()
        except Exception as e:
            logger.error(f"Redis pipelined HSET failed: {e}")
            return Err(StorageError.write_failed(keys, cause=e))

        if not silent:
            for key, previous in zip(keys, previous_values):
                if previous != mapping[key]:
                    await self._dispatcher.emit_change(
                        key, previous, mapping[key], C.SOURCE_SHEETWORKER,
                    )

        return Ok(None)

    async def list_group_member_ids(
        self,
        section: str,
    ) -> Result[list[str], StorageError]:
        if not self._connected:
            return Err(StorageError.not_connected("RedisHostStore"))

        section = normalize_section(section)
        try:
            fields = await self._client.hkeys(self._config.hash_key)
        except Exception as e:
            logger.error(f"Redis HKEYS failed: {e}")
            return Err(StorageError.list_failed(section, cause=e))

        row_ids = set()
        for key in fields:
            row_key = RowKey.parse(key, section)
            if row_key is not None:
                row_ids.add(row_key.row_id)

        # hash field order is unspecified; ids from one generator sort in creation order
        return Ok(sorted(row_ids))

    def new_identifier(self) -> str:
        return self._id_factory()

    def subscribe(self, event_spec: str, handler: EventHandler) -> None:
        self._dispatcher.subscribe(event_spec, handler)

    def translate(self, key: str) -> Optional[str]:
        return self._translations.get(key)

    # -------------------------------------------------------------------------
    # Environment Events
    # -------------------------------------------------------------------------

    async def emit(self, event: TriggerEvent) -> int:
        """Deliver an externally sourced event (open, click, drop)."""
        return await self._dispatcher.emit(event)
