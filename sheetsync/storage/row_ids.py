"""
Row Id Generation

Ids are 20 characters: a leading "-", seven characters encoding the
creation time in milliseconds, and twelve characters of tail. The
alphabet is ASCII-ordered and omits the key separator, so ids sort by
creation order and rendered row keys parse unambiguously.

Ids minted within one millisecond (or after the clock steps back) keep
the previous time prefix and increment the previous tail, so ids from
one generator are strictly increasing. Bulk-created rows therefore
list back in creation order from hosts that return them sorted.
"""

from __future__ import annotations

import random
import time
from typing import Callable, Optional

from sheetsync.core import constants as C

_BASE = len(C.ROW_ID_ALPHABET)
_TAIL_SPACE = _BASE ** C.ROW_ID_RANDOM_CHARS
_system_random = random.SystemRandom()


def encode_time(now_ms: int, width: int = C.ROW_ID_TIME_CHARS) -> str:
    """Fixed-width base-N encoding of a millisecond timestamp."""
    chars = []
    for _ in range(width):
        now_ms, digit = divmod(now_ms, _BASE)
        chars.append(C.ROW_ID_ALPHABET[digit])
    return "".join(reversed(chars))


def _wall_clock_ms() -> int:
    return time.time_ns() // C.NS_PER_MS


class MonotonicRowIds:
    """
    Strictly increasing row id generator.

    Usage:
        new_id = MonotonicRowIds()
        first, second = new_id(), new_id()   # first < second
    """

    __slots__ = ("_clock", "_rng", "_last_ms", "_last_tail")

    def __init__(
        self,
        clock: Callable[[], int] = _wall_clock_ms,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Args:
            clock: Millisecond wall clock
            rng: Random source for fresh tails (default: system random)
        """
        self._clock = clock
        self._rng = rng or _system_random
        self._last_ms = -1
        self._last_tail = 0

    def __call__(self, now_ms: Optional[int] = None) -> str:
        if now_ms is None:
            now_ms = self._clock()

        if now_ms > self._last_ms:
            # fresh tails start in the lower half of the tail space
            tail = self._rng.randrange(_TAIL_SPACE // 2)
        else:
            now_ms = self._last_ms
            tail = self._last_tail + 1
            if tail >= _TAIL_SPACE:
                now_ms += 1
                tail = 0

        self._last_ms = now_ms
        self._last_tail = tail
        return "-" + encode_time(now_ms) + encode_time(tail, C.ROW_ID_RANDOM_CHARS)


_default_ids = MonotonicRowIds()


def generate_row_id(
    now_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Generate a row id.

    Without arguments, ids come from the process-wide monotonic
    generator. An explicit ``rng`` draws an independent random tail.

    Args:
        now_ms: Creation time (default: wall clock)
        rng: Random source (default: process-wide monotonic generator)
    """
    if rng is None:
        return _default_ids(now_ms)
    if now_ms is None:
        now_ms = _wall_clock_ms()
    return "-" + encode_time(now_ms) + encode_time(
        rng.randrange(_TAIL_SPACE), C.ROW_ID_RANDOM_CHARS,
    )


def is_valid_row_id(row_id: str) -> bool:
    """True when row_id can be embedded in a rendered key."""
    return bool(row_id) and C.KEY_SEPARATOR not in row_id
