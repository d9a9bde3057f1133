"""
Event Dispatch: subscription table shared by host backends

Handlers subscribe to single event tokens; a space-joined event spec
subscribes the same handler to every token in it. Emitting an event
runs the token's handlers in registration order, awaiting coroutine
handlers before moving on.
"""

from __future__ import annotations

import inspect
import logging
from typing import Optional

from sheetsync.core import constants as C
from sheetsync.core.types import RowKey
from sheetsync.storage.protocols import EventHandler, TriggerEvent

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Event subscription and delivery.

    Usage:
        dispatcher = EventDispatcher()
        dispatcher.subscribe("change:a change:b", handler)
        await dispatcher.emit(TriggerEvent.change("a", "1", "2"))
    """

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_spec: str, handler: EventHandler) -> None:
        for token in event_spec.split():
            self._subscribers.setdefault(token.lower(), []).append(handler)

    def handlers_for(self, trigger_name: str) -> list[EventHandler]:
        return list(self._subscribers.get(trigger_name.lower(), ()))

    @property
    def tokens(self) -> list[str]:
        return list(self._subscribers)

    async def emit(self, event: TriggerEvent) -> int:
        """
        Deliver event to its subscribers in registration order.

        Returns the number of handlers invoked. Handler exceptions
        propagate to the emitter.
        """
        handlers = self.handlers_for(event.trigger_name)
        logger.debug(f"Dispatching {event.trigger_name} to {len(handlers)} handler(s)")
        for handler in handlers:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        return len(handlers)

    async def emit_change(
        self,
        key: str,
        previous_value: Optional[str],
        new_value: Optional[str],
        source_type: str,
    ) -> None:
        """
        Emit change events for one written key.

        Row member keys fire both ``change:repeating_<section>:<member>``
        and ``change:repeating_<section>``; flat keys fire ``change:<key>``.
        """
        row_key = RowKey.from_key(key)
        if row_key is None:
            await self.emit(TriggerEvent.change(
                key, previous_value, new_value, source_type=source_type,
            ))
            return

        section_token = f"{C.REPEATING_PREFIX}{row_key.section}"
        for trigger_name in (
            f"{C.CHANGE_EVENT_PREFIX}{section_token}:{row_key.member}",
            f"{C.CHANGE_EVENT_PREFIX}{section_token}",
        ):
            await self.emit(TriggerEvent.change(
                key,
                previous_value,
                new_value,
                source_type=source_type,
                trigger_name=trigger_name,
            ))
