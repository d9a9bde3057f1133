"""
Completion Barrier: join point for a fixed number of independent arrivals

A barrier created for N parties releases its waiters once N arrivals
have been recorded, regardless of the order they arrive in. The group
resolver sizes it as (declared sections + 1) so the resolver's own
readiness is one of the parties, which makes zero sections behave the
same as many.
"""

from __future__ import annotations

import asyncio


class CompletionBarrier:
    """
    Counting barrier over asyncio.Event.

    Usage:
        barrier = CompletionBarrier(parties=3)
        barrier.arrive()          # from each task
        await barrier.wait()      # released after the third arrival
    """

    __slots__ = ("_parties", "_arrived", "_released")

    def __init__(self, parties: int) -> None:
        if parties < 1:
            raise ValueError(f"Barrier needs at least one party, got {parties}")
        self._parties = parties
        self._arrived = 0
        self._released = asyncio.Event()

    def arrive(self) -> None:
        """Record one arrival. Arriving after release is a programming error."""
        if self._released.is_set():
            raise RuntimeError("Barrier already released")
        self._arrived += 1
        if self._arrived == self._parties:
            self._released.set()

    async def wait(self) -> None:
        await self._released.wait()

    @property
    def parties(self) -> int:
        return self._parties

    @property
    def remaining(self) -> int:
        return self._parties - self._arrived

    @property
    def is_released(self) -> bool:
        return self._released.is_set()
