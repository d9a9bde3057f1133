"""
Row Collection View: ordered per-section rows over the session's row arena

Collections hold row ids, never Row objects or positions; every handle
resolves its row through the session arena keyed by (section, id), so a
handle stays valid however the collection grows.

Rows can be appended but not removed. Member values are freely
readable and writable through RowHandle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping, Optional

from sheetsync.core.errors import DuplicateRowError
from sheetsync.core.types import Row
from sheetsync.storage.row_ids import is_valid_row_id

if TYPE_CHECKING:
    from sheetsync.session.session import SyncSession


class RowHandle:
    """
    Mutable view onto one row.

    Usage:
        row = session.view["bonds"][0]
        row["autogen"] = "1"
        row.id  # read-only
    """

    __slots__ = ("_session", "_row")

    def __init__(self, session: SyncSession, row: Row) -> None:
        self._session = session
        self._row = row

    @property
    def id(self) -> str:
        return self._row.id

    @property
    def section(self) -> str:
        return self._row.section

    def key(self, member: str) -> str:
        """Rendered host key of one member of this row."""
        return self._row.key(member).render()

    def get(self, member: str, default: Optional[str] = None) -> Optional[str]:
        return self._row.fields.get(member, default)

    def __getitem__(self, member: str) -> Optional[str]:
        return self._row.fields.get(member)

    def __setitem__(self, member: str, value: Any) -> None:
        self._session._write_member(self._row, member, value)

    def __contains__(self, member: str) -> bool:
        return member in self._row.fields

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowHandle):
            return NotImplemented
        return self._row is other._row

    def __hash__(self) -> int:
        return hash((self._row.section, self._row.id))

    def __repr__(self) -> str:
        return f"RowHandle({self._row.section!r}, {self._row.id!r}, {self._row.fields!r})"


class RowCollection:
    """
    Ordered rows of one declared section.

    Seeded with the resolved ids in host order; appended rows follow.
    """

    __slots__ = ("_session", "_section", "_ids")

    def __init__(self, session: SyncSession, section: str, row_ids: Iterable[str]) -> None:
        self._session = session
        self._section = section
        self._ids: list[str] = list(row_ids)

    @property
    def section(self) -> str:
        return self._section

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[RowHandle]:
        for row_id in list(self._ids):
            yield self._handle(row_id)

    def __getitem__(self, index: int) -> RowHandle:
        return self._handle(self._ids[index])

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._ids

    def by_id(self, row_id: str) -> Optional[RowHandle]:
        if row_id not in self._ids:
            return None
        return self._handle(row_id)

    def append(self, row_id: Optional[str] = None) -> RowHandle:
        """
        Add a row and return its handle.

        Args:
            row_id: Explicit id; minted through the session when omitted

        Raises:
            DuplicateRowError: explicit id already present in this section
            SyncError: no unused id could be minted
            SessionClosedError: session already finalized
        """
        self._session._ensure_open("append row")
        if row_id is None:
            row_id = self._session._mint_row_id(self._section)
        else:
            if not is_valid_row_id(row_id):
                raise ValueError(f"Invalid row id: {row_id!r}")
            if row_id in self._ids:
                raise DuplicateRowError.for_row(self._section, row_id)
            self._session._claim_row_id(row_id)

        row = self._session._add_row(self._section, row_id)
        self._ids.append(row_id)
        return RowHandle(self._session, row)

    def extend_records(self, records: Iterable[Mapping[str, Any]]) -> list[RowHandle]:
        """One new row per record, in order, with every member written."""
        handles = []
        for record in records:
            handle = self.append()
            for member, value in record.items():
                handle[member] = value
            handles.append(handle)
        return handles

    def _handle(self, row_id: str) -> RowHandle:
        return RowHandle(self._session, self._session._row(self._section, row_id))

    def __repr__(self) -> str:
        return f"RowCollection({self._section!r}, rows={len(self._ids)})"
