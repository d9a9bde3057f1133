"""
Throttle: leading-edge rate limiting for user-initiated triggers

The first activation runs immediately; further activations inside the
interval are dropped. Trailing invocations are disabled, so nothing is
queued to run when the interval ends.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sheetsync.core import constants as C
from sheetsync.storage.protocols import EventHandler, TriggerEvent

logger = logging.getLogger(__name__)


@dataclass
class ThrottleStats:
    """Throttle statistics."""
    name: str
    interval_ms: int
    fired: int
    suppressed: int


class Throttle:
    """
    Leading-edge throttle with an injectable clock.

    Usage:
        throttle = Throttle(interval_ms=50, name="refresh")
        subscribe("clicked:refresh", throttle.wrap(handler))
    """

    __slots__ = ("_name", "_interval_ms", "_clock", "_last_fired", "_fired", "_suppressed")

    def __init__(
        self,
        interval_ms: int = C.BUTTON_THROTTLE_MS,
        clock: Callable[[], int] = time.monotonic_ns,
        name: str = "throttle",
    ) -> None:
        """
        Args:
            interval_ms: Minimum time between two runs
            clock: Nanosecond source, monotonic
            name: Identifier for logging
        """
        if interval_ms < 0:
            raise ValueError(f"Throttle interval cannot be negative: {interval_ms}")
        self._name = name
        self._interval_ms = interval_ms
        self._clock = clock
        self._last_fired: Optional[int] = None
        self._fired = 0
        self._suppressed = 0

    def try_acquire(self) -> bool:
        """True if a run may start now; records the run when it may."""
        now = self._clock()
        if (
            self._last_fired is not None
            and now - self._last_fired < self._interval_ms * C.NS_PER_MS
        ):
            self._suppressed += 1
            return False
        self._last_fired = now
        self._fired += 1
        return True

    def wrap(self, handler: EventHandler) -> EventHandler:
        """Event handler that forwards to ``handler`` when not throttled."""

        def throttled(event: TriggerEvent) -> Any:
            if not self.try_acquire():
                logger.debug(f"Throttle '{self._name}' suppressed {event.trigger_name}")
                return None
            return handler(event)

        return throttled

    def reset(self) -> None:
        self._last_fired = None

    @property
    def stats(self) -> ThrottleStats:
        return ThrottleStats(
            name=self._name,
            interval_ms=self._interval_ms,
            fired=self._fired,
            suppressed=self._suppressed,
        )
