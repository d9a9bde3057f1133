"""
Diff Finalizer: write back only what actually changed

At finalize the buffered keys are re-read from the host, not compared
against the values read when the session opened, so a value that
already matches the host is never written again. This stops a handler
from re-triggering itself through its own write and keeps write
traffic minimal.

Consistency:
    Last writer wins. An external edit landing between the re-read and
    the write is overwritten without a conflict signal.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from sheetsync.core.config import SessionConfig
from sheetsync.core.errors import SyncError
from sheetsync.core.types import Result, Ok, Err
from sheetsync.storage.protocols import HostStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WriteReport:
    """Outcome of one finalize."""
    written: dict[str, str]
    unchanged: tuple[str, ...]

    @property
    def wrote_anything(self) -> bool:
        return bool(self.written)


CompletionCallback = Callable[[WriteReport], Union[None, Awaitable[Any]]]


def compute_write_set(
    buffer: Mapping[str, str],
    current: Mapping[str, str],
) -> dict[str, str]:
    """
    Keys whose buffered value differs from the current host value.

    A key absent from ``current`` always differs.
    """
    return {
        key: value
        for key, value in buffer.items()
        if current.get(key) != value
    }


class DiffFinalizer:
    """
    Re-read, diff and write for one session buffer.

    Exactly one host write is issued per finalize, unless
    SessionConfig.skip_empty_writes is set and nothing changed.
    """

    __slots__ = ("_host", "_config")

    def __init__(self, host: HostStore, config: Optional[SessionConfig] = None) -> None:
        self._host = host
        self._config = config or SessionConfig()

    async def finalize(
        self,
        buffer: Mapping[str, str],
        on_complete: Optional[CompletionCallback] = None,
    ) -> Result[WriteReport, SyncError]:
        keys = list(buffer)

        current = await self._host.read(keys)
        if current.is_err():
            logger.error(f"Finalize re-read failed, nothing written: {current.error}")
            return Err(SyncError.host_failure("finalize read", current.error))

        write_set = compute_write_set(buffer, current.value)
        report = WriteReport(
            written=write_set,
            unchanged=tuple(key for key in keys if key not in write_set),
        )

        if write_set or not self._config.skip_empty_writes:
            written = await self._host.write(write_set, silent=self._config.silent_writes)
            if written.is_err():
                logger.error(f"Finalize write failed: {written.error}")
                return Err(SyncError.host_failure("finalize write", written.error))

        logger.debug(
            f"Finalized {len(keys)} buffered key(s): "
            f"{len(report.written)} written, {len(report.unchanged)} unchanged"
        )

        if on_complete is not None:
            result = on_complete(report)
            if inspect.isawaitable(result):
                await result

        return Ok(report)
