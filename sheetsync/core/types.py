"""
Core Type Definitions for the Attribute Synchronization Engine

Implements the Result/Either monad used by every fallible host operation,
plus the small value types shared by the storage and session layers.

Design Principles:
- Host I/O never raises for expected failures (returns Result)
- Programming errors raise immediately
- Row identity is always (section, row id), never a list position

Key Format:
    flat field:  <name>
    row member:  repeating_<section>_<row_id>_<member>
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    Optional,
    TypeVar,
    Union,
)

from sheetsync.core import constants as C

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD: ZERO-EXCEPTION CONTROL FLOW
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.

    Immutable container for successful computation results.
    """

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))

    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind for chaining fallible operations."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.

    Carries the error for the caller to inspect or propagate.
    """

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> Any:
        """
        Attempting to unwrap an error is a programming error.

        Raises:
            RuntimeError: Always, with error context
        """
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default

    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self

    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        """Propagate error through monadic chain."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# TIMESTAMP
# =============================================================================
@dataclass(frozen=True, slots=True, order=True)
class Timestamp:
    """Nanoseconds since Unix epoch, used to stamp errors and log records."""

    nanos: int

    @classmethod
    def now(cls) -> Timestamp:
        return cls(nanos=time.time_ns())

    @property
    def millis(self) -> int:
        """Convert to milliseconds (truncating)."""
        return self.nanos // 1_000_000

    def __repr__(self) -> str:
        return f"Timestamp({self.nanos}ns)"


# =============================================================================
# FIELD KEYS
# =============================================================================
def normalize_section(name: str) -> str:
    """
    Strip the optional ``repeating_`` prefix from a section name.

    Both ``bonds`` and ``repeating_bonds`` address the same section.
    """
    if name.startswith(C.REPEATING_PREFIX):
        return name[len(C.REPEATING_PREFIX):]
    return name


@dataclass(frozen=True, slots=True)
class RowKey:
    """
    Fully qualified key of one member of one row.

    Invariant: neither section nor row_id contains the key separator,
    so a rendered key parses back unambiguously.
    """

    section: str
    row_id: str
    member: str

    def render(self) -> str:
        """Host-side key string."""
        return f"{C.REPEATING_PREFIX}{self.section}_{self.row_id}_{self.member}"

    @classmethod
    def parse(cls, key: str, section: str) -> Optional[RowKey]:
        """
        Parse a rendered key belonging to ``section``.

        Returns None if the key is not a member key of that section.
        """
        row_key = cls.from_key(key)
        if row_key is None or row_key.section != normalize_section(section):
            return None
        return row_key

    @classmethod
    def from_key(cls, key: str) -> Optional[RowKey]:
        """
        Parse any rendered row key.

        Section names never contain the separator, so the first two
        separators after the prefix delimit section and row id.
        """
        if not key.startswith(C.REPEATING_PREFIX):
            return None
        parts = key[len(C.REPEATING_PREFIX):].split(C.KEY_SEPARATOR, 2)
        if len(parts) != 3 or not all(parts):
            return None
        section, row_id, member = parts
        return cls(section=section, row_id=row_id, member=member)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class SectionSpec:
    """
    Declaration of a repeatable section and the members a caller needs
    from every existing row of it.
    """

    name: str
    members: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # frozen: bypass __setattr__ to normalize inputs
        object.__setattr__(self, "name", normalize_section(self.name))
        object.__setattr__(self, "members", tuple(self.members))
        if not self.name or C.KEY_SEPARATOR in self.name:
            raise ValueError(f"Invalid section name: {self.name!r}")

    @classmethod
    def of(cls, name: str, *members: str) -> SectionSpec:
        return cls(name=name, members=tuple(members))


# =============================================================================
# ROW RECORD
# =============================================================================
@dataclass(slots=True)
class Row:
    """
    Tagged row record stored in the per-session row arena.

    Fields hold the last-known string value of every member the session
    has read or written.
    """

    section: str
    id: str
    fields: dict[str, str] = field(default_factory=dict)

    def key(self, member: str) -> RowKey:
        return RowKey(section=self.section, row_id=self.id, member=member)


def coerce_value(value: Any) -> str:
    """
    Coerce a value to its stored string form.

    None is stored as the empty string and booleans as "true"/"false",
    matching the host's own string conversion; everything else via str().
    Checkbox fields expect "1"/"0" instead: use bool_to_flag for those.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
