"""
Host Store Protocol: the asynchronous field storage the engine syncs against

Provides structural subtyping protocols (PEP 544) for pluggable hosts:
- HostStore: batched async read/write, section row listing, row id
  generation, event subscription, localization lookup
- TriggerEvent: per-invocation context delivered to subscribed handlers

Design Principles:
    - Async-first: every storage call is a suspension point
    - Result monad for host failures, never exceptions
    - No synchronous or transactional access
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

from sheetsync.core.types import Result
from sheetsync.core.errors import StorageError
from sheetsync.core import constants as C


# =============================================================================
# TRIGGER EVENT
# =============================================================================
@dataclass(frozen=True, slots=True)
class TriggerEvent:
    """
    Context for one trigger invocation.

    trigger_name is the single event token that fired, e.g.
    ``change:strength``, ``clicked:roll``, ``sheet:opened`` or ``drop``.
    """
    trigger_name: str
    source_attribute: Optional[str] = None
    source_type: str = C.SOURCE_PLAYER
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    payload: Optional[str] = None

    @classmethod
    def change(
        cls,
        attribute: str,
        previous_value: Optional[str],
        new_value: Optional[str],
        source_type: str = C.SOURCE_PLAYER,
        trigger_name: Optional[str] = None,
    ) -> TriggerEvent:
        return cls(
            trigger_name=trigger_name or f"{C.CHANGE_EVENT_PREFIX}{attribute}",
            source_attribute=attribute,
            source_type=source_type,
            previous_value=previous_value,
            new_value=new_value,
        )

    @classmethod
    def opened(cls) -> TriggerEvent:
        return cls(trigger_name=C.SHEET_OPENED_EVENT)

    @classmethod
    def clicked(cls, button: str) -> TriggerEvent:
        return cls(
            trigger_name=f"{C.CLICK_EVENT_PREFIX}{button}",
            source_attribute=button,
        )

    @classmethod
    def dropped(cls, payload: str) -> TriggerEvent:
        return cls(trigger_name=C.DROP_EVENT, payload=payload)


EventHandler = Callable[[TriggerEvent], Union[None, Awaitable[Any]]]
TranslationLookup = Callable[[str], Optional[str]]


# =============================================================================
# HOST STORE PROTOCOL
# =============================================================================
@runtime_checkable
class HostStore(Protocol):
    """
    Asynchronous, batched, callback-style field storage.

    Values are always strings. Keys absent from the store are omitted
    from read results rather than mapped to a sentinel.
    """

    async def read(
        self,
        keys: Sequence[str],
    ) -> Result[dict[str, str], StorageError]:
        """Batched read of the given keys."""
        ...

    async def write(
        self,
        values: Mapping[str, str],
        silent: bool = False,
    ) -> Result[None, StorageError]:
        """
        Batched write. When silent, no change events are emitted for
        the written keys.
        """
        ...

    async def list_group_member_ids(
        self,
        section: str,
    ) -> Result[list[str], StorageError]:
        """Row ids currently present in a section, in host order."""
        ...

    def new_identifier(self) -> str:
        """Fresh row id. Not guaranteed unique across calls."""
        ...

    def subscribe(self, event_spec: str, handler: EventHandler) -> None:
        """Subscribe handler to each space-separated event token."""
        ...

    def translate(self, key: str) -> Optional[str]:
        """Localization lookup; None when the key is unknown."""
        ...
