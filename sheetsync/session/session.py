"""
Synchronization Session: one read, in-memory mutation, one diffed write

Lifecycle:
    open      resolve declared sections, then one batched host read
    handler   get/set against the in-memory snapshot and row arena
    finalize  re-read buffered keys, write only the changed ones

Reads never contact the host after open. Every set is written through
to the local cache and recorded in the write buffer, keyed by the
rendered host key; a later set of the same key overwrites the earlier
one.

Name forms accepted by get/set:
    flat field       "strength"
    section          "bonds" or "repeating_bonds"   (get only)
    row path         "bonds.0.autogen"
    rendered key     "repeating_bonds_<rowid>_autogen"
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence, Union
from uuid import uuid4

from sheetsync.core import constants as C
from sheetsync.core.config import SessionConfig
from sheetsync.core.errors import SectionWriteError, SessionClosedError, SyncError
from sheetsync.core.types import (
    Result,
    Ok,
    Err,
    Row,
    RowKey,
    SectionSpec,
    coerce_value,
    normalize_section,
)
from sheetsync.observability.logging import log_context
from sheetsync.session.finalizer import CompletionCallback, DiffFinalizer, WriteReport
from sheetsync.session.resolver import GroupResolver, ResolvedKeys, merge_sections
from sheetsync.session.rows import RowCollection
from sheetsync.storage.protocols import HostStore
from sheetsync.storage.row_ids import is_valid_row_id

logger = logging.getLogger(__name__)


class SyncSession:
    """
    In-memory read/write context for one trigger invocation.

    Usage:
        result = await SyncSession.open(host, ["x", "y"])
        session = result.unwrap()
        session.set("y", 9)
        await session.finalize()
    """

    __slots__ = (
        "_host",
        "_config",
        "_session_id",
        "_fields",
        "_sections",
        "_snapshot",
        "_rows",
        "_collections",
        "_buffer",
        "_minted",
        "_closed",
    )

    def __init__(
        self,
        host: HostStore,
        resolved: ResolvedKeys,
        values: Mapping[str, str],
        fields: Sequence[str] = (),
        sections: Sequence[SectionSpec] = (),
        config: Optional[SessionConfig] = None,
    ) -> None:
        self._host = host
        self._config = config or SessionConfig()
        self._session_id = uuid4().hex[:12]
        self._fields = tuple(fields)
        self._sections = {spec.name: spec for spec in sections}
        self._snapshot: dict[str, str] = {}
        self._rows: dict[tuple[str, str], Row] = {}
        self._collections: dict[str, RowCollection] = {}
        self._buffer: dict[str, str] = {}
        self._minted: set[str] = set()
        self._closed = False

        for name in self._sections:
            row_ids = resolved.row_ids.get(name, [])
            for row_id in row_ids:
                self._rows[(name, row_id)] = Row(section=name, id=row_id)
                self._minted.add(row_id)
            self._collections[name] = RowCollection(self, name, row_ids)

        for key, value in values.items():
            row = self._row_for_key(key)
            if row is not None:
                row.fields[RowKey.from_key(key).member] = value
            else:
                self._snapshot[key] = value

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    async def open(
        cls,
        host: HostStore,
        fields: Sequence[str] = (),
        sections: Sequence[SectionSpec] = (),
        config: Optional[SessionConfig] = None,
    ) -> Result[SyncSession, SyncError]:
        """
        Resolve sections and perform the session's single batched read.

        Returns:
            Ok(SyncSession), or Err(SyncError) if any host call failed.
        """
        fields = list(fields)
        sections = merge_sections(sections)
        resolved = await GroupResolver(host).resolve(fields, sections)
        if resolved.is_err():
            return resolved

        keys = resolved.value
        read = await host.read(list(keys.keys))
        if read.is_err():
            logger.error(f"Session read failed: {read.error}")
            return Err(SyncError.host_failure("read", read.error))

        session = cls(host, keys, read.value, fields, sections, config)
        logger.debug(
            f"Opened session {session.session_id}: "
            f"{len(keys.keys)} key(s) requested, {len(read.value)} present"
        )
        return Ok(session)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get(
        self,
        name: str,
        default: Optional[str] = None,
    ) -> Union[str, RowCollection, None]:
        """
        Read a flat field, a row member or a section collection.

        Undeclared or absent keys return ``default``.
        """
        section = self._section_name(name)
        if section is not None:
            return self._collections[section]

        path = self._parse_path(name)
        if path is not None:
            section, index, member = path
            collection = self._collections[section]
            if not -len(collection) <= index < len(collection):
                return default
            return collection[index].get(member, default)

        row = self._row_for_key(name)
        if row is not None:
            return row.fields.get(RowKey.from_key(name).member, default)

        return self._snapshot.get(name, default)

    def set(self, name: str, value: Any) -> None:
        """
        Write a flat field or row member.

        Raises:
            SectionWriteError: name is a section, not a field
            SessionClosedError: session already finalized
            IndexError: row path index out of range
        """
        self._ensure_open("set")

        if self._section_name(name) is not None:
            raise SectionWriteError.for_section(normalize_section(name))

        path = self._parse_path(name)
        if path is not None:
            section, index, member = path
            self._collections[section][index][member] = value
            return

        row = self._row_for_key(name)
        if row is not None:
            self._write_member(row, RowKey.from_key(name).member, value)
            return

        if name.startswith(C.REPEATING_PREFIX) and RowKey.from_key(name) is None:
            raise SectionWriteError.for_section(normalize_section(name))

        stored = coerce_value(value)
        self._snapshot[name] = stored
        self._buffer[name] = stored

    def set_many(self, values: Mapping[str, Any]) -> None:
        """Set every entry, in mapping order."""
        for name, value in values.items():
            self.set(name, value)

    def section(self, name: str) -> RowCollection:
        """
        Collection of a declared section.

        Raises:
            KeyError: section was not declared when the session opened
        """
        section = normalize_section(name)
        if section not in self._collections:
            raise KeyError(f"Section '{section}' was not declared")
        return self._collections[section]

    @property
    def view(self) -> AttributeView:
        return AttributeView(self)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def buffer(self) -> dict[str, str]:
        """Copy of every key set during the session and its final value."""
        return dict(self._buffer)

    @property
    def snapshot(self) -> dict[str, str]:
        """Copy of the flat field cache."""
        return dict(self._snapshot)

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Finalize
    # -------------------------------------------------------------------------

    async def finalize(
        self,
        on_complete: Optional[CompletionCallback] = None,
    ) -> Result[WriteReport, SyncError]:
        """
        Re-read buffered keys and write the ones that changed.

        Raises:
            SessionClosedError: finalize already called
        """
        self._ensure_open("finalize")
        self._closed = True
        return await DiffFinalizer(self._host, self._config).finalize(
            self._buffer, on_complete,
        )

    def discard(self) -> None:
        """Close the session without writing anything."""
        self._closed = True

    # -------------------------------------------------------------------------
    # Row Arena (used by RowCollection and RowHandle)
    # -------------------------------------------------------------------------

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise SessionClosedError.after_finalize(operation)

    def _row(self, section: str, row_id: str) -> Row:
        return self._rows[(section, row_id)]

    def _add_row(self, section: str, row_id: str) -> Row:
        row = Row(section=section, id=row_id)
        self._rows[(section, row_id)] = row
        return row

    def _claim_row_id(self, row_id: str) -> None:
        self._minted.add(row_id)

    def _mint_row_id(self, section: str) -> str:
        attempts = self._config.max_id_attempts
        for attempt in range(1, attempts + 1):
            candidate = self._host.new_identifier()
            if candidate in self._minted or not is_valid_row_id(candidate):
                logger.debug(
                    f"Row id {candidate!r} for '{section}' already used, "
                    f"retrying (attempt {attempt})"
                )
                continue
            self._minted.add(candidate)
            return candidate
        raise SyncError.id_generation_exhausted(section, attempts)

    def _write_member(self, row: Row, member: str, value: Any) -> None:
        self._ensure_open("set")
        stored = coerce_value(value)
        row.fields[member] = stored
        self._buffer[row.key(member).render()] = stored

    # -------------------------------------------------------------------------
    # Name Resolution
    # -------------------------------------------------------------------------

    def _section_name(self, name: str) -> Optional[str]:
        section = normalize_section(name)
        return section if section in self._sections else None

    def _parse_path(self, name: str) -> Optional[tuple[str, int, str]]:
        parts = name.split(".")
        if len(parts) != 3:
            return None
        section = self._section_name(parts[0])
        if section is None:
            return None
        try:
            index = int(parts[1])
        except ValueError:
            return None
        return section, index, parts[2]

    def _row_for_key(self, key: str) -> Optional[Row]:
        row_key = RowKey.from_key(key)
        if row_key is None:
            return None
        return self._rows.get((row_key.section, row_key.row_id))

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return (
            f"SyncSession({self._session_id}, {state}, "
            f"fields={len(self._snapshot)}, rows={len(self._rows)}, "
            f"buffered={len(self._buffer)})"
        )


class AttributeView:
    """
    Indexer interface over a session.

    Usage:
        view["y"] = 9
        view["bonds"][0]["autogen"]
        "x" in view
    """

    __slots__ = ("_session",)

    def __init__(self, session: SyncSession) -> None:
        self._session = session

    def __getitem__(self, name: str) -> Union[str, RowCollection, None]:
        return self._session.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._session.set(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._session.get(name) is not None

    def get(self, name: str, default: Optional[str] = None) -> Union[str, RowCollection, None]:
        return self._session.get(name, default)

    def update(self, values: Mapping[str, Any]) -> None:
        self._session.set_many(values)

    def section(self, name: str) -> RowCollection:
        return self._session.section(name)


SessionHandler = Callable[[AttributeView, SyncSession], Union[None, Awaitable[Any]]]


async def open_session(
    host: HostStore,
    fields: Sequence[str] = (),
    sections: Sequence[SectionSpec] = (),
    config: Optional[SessionConfig] = None,
) -> Result[tuple[AttributeView, SyncSession], SyncError]:
    """Open a session and return its (view, raw handle) pair."""
    opened = await SyncSession.open(host, fields, sections, config)
    return opened.map(lambda session: (session.view, session))


async def sync_attrs(
    host: HostStore,
    fields: Iterable[str],
    handler: SessionHandler,
    sections: Sequence[SectionSpec] = (),
    config: Optional[SessionConfig] = None,
    on_complete: Optional[CompletionCallback] = None,
) -> Result[WriteReport, SyncError]:
    """
    Open a session, run handler against it, then finalize.

    The handler receives ``(view, session)`` and may be a coroutine
    function. If it raises, the session is discarded without writing
    and the exception propagates.
    """
    opened = await SyncSession.open(host, list(fields), sections, config)
    if opened.is_err():
        return opened

    session = opened.value
    with log_context(session_id=session.session_id):
        try:
            result = handler(session.view, session)
            if inspect.isawaitable(result):
                await result
        except Exception:
            session.discard()
            logger.error(f"Handler failed, session {session.session_id} discarded")
            raise

        return await session.finalize(on_complete)
