"""
Trigger Coordinator: attach handlers to host events

Registration helpers for the event kinds a sheet reacts to:
- field changes        change:<field> (any of several fields)
- sheet open           sheet:opened
- button clicks        clicked:<button>, throttled on the leading edge
- single field         change + open routed through one handler
- structured drops     drop

Every registration and every invocation is logged with the handler
name, and each invocation runs inside a log_context binding the
trigger and handler so session logs correlate. A handler returning an
Err result has its error logged; handler exceptions are logged and
re-raised to the host.
"""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from sheetsync.core import constants as C
from sheetsync.core.config import TriggerConfig
from sheetsync.core.types import Err
from sheetsync.observability.logging import StructuredLogger, log_context
from sheetsync.storage.protocols import EventHandler, HostStore, TriggerEvent
from sheetsync.triggers.throttle import Throttle

logger = StructuredLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """One handler attached to one event spec."""
    name: str
    event_spec: str


class TriggerCoordinator:
    """
    Registers handlers against a host's events.

    Usage:
        coordinator = TriggerCoordinator(host)
        coordinator.on_field_change(["strength", "agility"], recalculate)
        coordinator.on_button("refresh_labels", refresh)
        await host.click("refresh_labels")
    """

    __slots__ = ("_host", "_config", "_clock", "_throttles", "_registrations")

    def __init__(
        self,
        host: HostStore,
        config: Optional[TriggerConfig] = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ) -> None:
        """
        Args:
            host: Event source
            config: Button throttle interval
            clock: Nanosecond source for button throttles
        """
        self._host = host
        self._config = config or TriggerConfig()
        self._clock = clock
        self._throttles: dict[str, Throttle] = {}
        self._registrations: list[Registration] = []

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def on_field_change(
        self,
        fields: Union[str, Iterable[str]],
        handler: EventHandler,
        name: Optional[str] = None,
    ) -> Registration:
        """Run handler when any of ``fields`` changes."""
        if isinstance(fields, str):
            fields = [fields]
        event_spec = " ".join(f"{C.CHANGE_EVENT_PREFIX}{field}" for field in fields)
        return self._register(event_spec, handler, name)

    def on_open(
        self,
        handler: EventHandler,
        name: Optional[str] = None,
    ) -> Registration:
        """Run handler when the sheet is opened."""
        return self._register(C.SHEET_OPENED_EVENT, handler, name)

    def on_button(
        self,
        button: str,
        handler: EventHandler,
        name: Optional[str] = None,
    ) -> Registration:
        """
        Run handler when ``button`` is clicked.

        Clicks arriving within the throttle interval of the last run
        are dropped; no trailing run is scheduled.
        """
        name = name or _handler_name(handler)
        throttle = Throttle(
            interval_ms=self._config.button_throttle_ms,
            clock=self._clock,
            name=name,
        )
        self._throttles[button] = throttle
        return self._register(
            f"{C.CLICK_EVENT_PREFIX}{button}", handler, name, gate=throttle,
        )

    def on_single_field(
        self,
        field: str,
        handler: EventHandler,
        name: Optional[str] = None,
    ) -> tuple[Registration, Registration]:
        """Run handler when ``field`` changes and when the sheet opens."""
        name = name or _handler_name(handler)
        return (
            self.on_field_change([field], handler, name),
            self.on_open(handler, name),
        )

    def on_drop(
        self,
        handler: EventHandler,
        name: Optional[str] = None,
    ) -> Registration:
        """Run handler when structured data is dropped onto the sheet."""
        return self._register(C.DROP_EVENT, handler, name)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def registrations(self) -> list[Registration]:
        return list(self._registrations)

    def throttle_for(self, button: str) -> Optional[Throttle]:
        return self._throttles.get(button)

    @property
    def host(self) -> HostStore:
        return self._host

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _register(
        self,
        event_spec: str,
        handler: EventHandler,
        name: Optional[str],
        gate: Optional[Throttle] = None,
    ) -> Registration:
        name = name or _handler_name(handler)

        async def invoke(event: TriggerEvent) -> Any:
            with log_context(trigger=event.trigger_name, handler=name):
                logger.info(
                    f"Triggered {name}",
                    source_attribute=event.source_attribute,
                    source_type=event.source_type,
                )
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        result = await result
                except Exception as e:
                    logger.error(f"Handler {name} failed: {e}")
                    raise

                if isinstance(result, Err):
                    logger.error(f"Handler {name} aborted: {result.error}")
                return result

        self._host.subscribe(event_spec, gate.wrap(invoke) if gate else invoke)
        registration = Registration(name=name, event_spec=event_spec)
        self._registrations.append(registration)
        logger.info(f"Registered {name}", event_spec=event_spec)
        return registration


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__name__", None) or repr(handler)
