"""
In-Memory Host Store: Development and Testing Implementation

Provides a dict-backed implementation of the HostStore protocol that
behaves like a hosted character-sheet environment:
- Batched async read/write with optional simulated latency
- Row listing per section in first-write order
- Change events for non-silent writes, suppressed for silent ones
- Environment simulation: user edits, sheet open, button clicks, drops

Design Principles:
    - Full protocol compliance for seamless swap with other hosts
    - Every host call is a real suspension point
    - One-shot failure injection for exercising abort paths

Example:
    host = InMemoryHostStore(translations={"name": "Name"})
    host.subscribe("change:strength", handler)
    await host.apply_user_change("strength", "3")
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from sheetsync.core import constants as C
from sheetsync.core.config import HostConfig
from sheetsync.core.errors import StorageError
from sheetsync.core.types import Result, Ok, Err, RowKey, coerce_value, normalize_section
from sheetsync.storage.events import EventDispatcher
from sheetsync.storage.protocols import EventHandler, TriggerEvent
from sheetsync.storage.row_ids import generate_row_id

logger = logging.getLogger(__name__)


# =============================================================================
# HOST STATISTICS
# =============================================================================
@dataclass
class HostStats:
    """Host call counters."""
    read_calls: int = 0
    write_calls: int = 0
    list_calls: int = 0
    keys_read: int = 0
    keys_written: int = 0
    events_emitted: int = 0


# =============================================================================
# IN-MEMORY HOST STORE
# =============================================================================
class InMemoryHostStore:
    """
    Dict-backed host store.

    Thread Safety:
        All storage operations are serialized by an asyncio.Lock;
        change events are emitted after the lock is released so
        handlers can call back into the store.
    """

    __slots__ = (
        "_data",
        "_lock",
        "_dispatcher",
        "_translations",
        "_id_factory",
        "_latency_ms",
        "_failures",
        "_stats",
        "_write_log",
    )

    def __init__(
        self,
        initial: Optional[Mapping[str, object]] = None,
        translations: Optional[Mapping[str, str]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        config: Optional[HostConfig] = None,
    ) -> None:
        """
        Args:
            initial: Field values present before any session runs
            translations: Localization table served by translate()
            id_factory: Row id generator (default: generate_row_id)
            config: Simulated latency settings
        """
        self._data: dict[str, str] = {
            key: coerce_value(value) for key, value in (initial or {}).items()
        }
        self._lock = asyncio.Lock()
        self._dispatcher = EventDispatcher()
        self._translations = dict(translations or {})
        self._id_factory = id_factory or generate_row_id
        self._latency_ms = (config or HostConfig()).latency_ms
        self._failures: set[str] = set()
        self._stats = HostStats()
        self._write_log: list[dict[str, str]] = []

    async def _simulate_latency(self) -> None:
        # always yield so every host call is a suspension point
        await asyncio.sleep(self._latency_ms / 1000)

    def fail_next(self, operation: str) -> None:
        """Make the next call of ``read``, ``write`` or ``list`` fail."""
        if operation not in {"read", "write", "list"}:
            raise ValueError(f"Unknown operation: {operation}")
        self._failures.add(operation)

    def _take_failure(self, operation: str) -> bool:
        if operation in self._failures:
            self._failures.discard(operation)
            return True
        return False

    # -------------------------------------------------------------------------
    # HostStore Implementation
    # -------------------------------------------------------------------------

    async def read(
        self,
        keys: Sequence[str],
    ) -> Result[dict[str, str], StorageError]:
        await self._simulate_latency()

        async with self._lock:
            self._stats.read_calls += 1
            if self._take_failure("read"):
                return Err(StorageError.read_failed(list(keys)))

            values = {key: self._data[key] for key in keys if key in self._data}
            self._stats.keys_read += len(values)
            return Ok(values)

    async def write(
        self,
        values: Mapping[str, str],
        silent: bool = False,
    ) -> Result[None, StorageError]:
        await self._simulate_latency()

        async with self._lock:
            self._stats.write_calls += 1
            if self._take_failure("write"):
                return Err(StorageError.write_failed(list(values)))

            changes = self._apply(values)
            self._write_log.append({key: coerce_value(v) for key, v in values.items()})
            logger.debug(f"Wrote {len(values)} field(s), silent={silent}")

        if not silent:
            for key, previous, new in changes:
                await self._emit_change(key, previous, new, C.SOURCE_SHEETWORKER)

        return Ok(None)

    async def list_group_member_ids(
        self,
        section: str,
    ) -> Result[list[str], StorageError]:
        await self._simulate_latency()

        section = normalize_section(section)
        async with self._lock:
            self._stats.list_calls += 1
            if self._take_failure("list"):
                return Err(StorageError.list_failed(section))

            # dicts keep insertion order: ids come back in first-write order
            row_ids: dict[str, None] = {}
            for key in self._data:
                row_key = RowKey.parse(key, section)
                if row_key is not None:
                    row_ids.setdefault(row_key.row_id, None)
            return Ok(list(row_ids))

    def new_identifier(self) -> str:
        return self._id_factory()

    def subscribe(self, event_spec: str, handler: EventHandler) -> None:
        self._dispatcher.subscribe(event_spec, handler)

    def translate(self, key: str) -> Optional[str]:
        return self._translations.get(key)

    # -------------------------------------------------------------------------
    # Environment Simulation
    # -------------------------------------------------------------------------

    async def apply_user_change(self, key: str, value: object) -> None:
        """Simulate the player editing a field."""
        async with self._lock:
            changes = self._apply({key: coerce_value(value)})

        for changed_key, previous, new in changes:
            await self._emit_change(changed_key, previous, new, C.SOURCE_PLAYER)

    async def emit(self, event: TriggerEvent) -> int:
        """Deliver an event to its subscribers."""
        self._stats.events_emitted += 1
        return await self._dispatcher.emit(event)

    async def open_sheet(self) -> int:
        """Simulate the sheet being displayed."""
        return await self.emit(TriggerEvent.opened())

    async def click(self, button: str) -> int:
        """Simulate a button press."""
        return await self.emit(TriggerEvent.clicked(button))

    async def drop(self, payload: str) -> int:
        """Simulate structured data being dropped onto the sheet."""
        return await self.emit(TriggerEvent.dropped(payload))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _apply(self, values: Mapping[str, object]) -> list[tuple[str, Optional[str], str]]:
        changes = []
        for key, value in values.items():
            new = coerce_value(value)
            previous = self._data.get(key)
            self._data[key] = new
            self._stats.keys_written += 1
            if previous != new:
                changes.append((key, previous, new))
        return changes

    async def _emit_change(
        self,
        key: str,
        previous: Optional[str],
        new: str,
        source_type: str,
    ) -> None:
        self._stats.events_emitted += 1
        await self._dispatcher.emit_change(key, previous, new, source_type)

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict[str, str]:
        """Copy of every stored field."""
        return dict(self._data)

    def value(self, key: str) -> Optional[str]:
        return self._data.get(key)

    @property
    def write_log(self) -> list[dict[str, str]]:
        """Every write batch received, in order."""
        return list(self._write_log)

    @property
    def stats(self) -> HostStats:
        return self._stats

    @property
    def subscribed_events(self) -> list[str]:
        return self._dispatcher.tokens
