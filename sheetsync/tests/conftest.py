"""
Shared fixtures: deterministic ids, a fake clock and a stub Redis client.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import pytest

from sheetsync.core.constants import NS_PER_MS
from sheetsync.storage import InMemoryHostStore


class ScriptedIds:
    """Row id factory replaying a fixed script, then counting upward."""

    def __init__(self, script: Iterable[str] = ()) -> None:
        self._script = list(script)
        self._counter = 0
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self._script:
            return self._script.pop(0)
        self._counter += 1
        return f"-gen{self._counter:04d}"


class FakeClock:
    """Monotonic nanosecond source advanced by hand."""

    def __init__(self, start: int = 1_000 * NS_PER_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms * NS_PER_MS


class StubPipeline:
    """Buffers hmget/hset calls like redis.asyncio's Pipeline."""

    def __init__(self, client: StubRedis) -> None:
        self._client = client
        self._commands: list[tuple[str, tuple, dict]] = []

    async def __aenter__(self) -> StubPipeline:
        return self

    async def __aexit__(self, *args: Any) -> None:
        self._commands.clear()

    def hmget(self, name: str, keys: list[str]) -> StubPipeline:
        self._commands.append(("hmget", (name, keys), {}))
        return self

    def hset(self, name: str, mapping: dict[str, str]) -> StubPipeline:
        self._commands.append(("hset", (name,), {"mapping": mapping}))
        return self

    async def execute(self) -> list[Any]:
        if self._client.fail_with is not None:
            raise self._client.fail_with
        results = []
        for command, args, kwargs in self._commands:
            results.append(await getattr(self._client, command)(*args, **kwargs))
        self._client.pipelines_executed += 1
        return results


class StubRedis:
    """In-process stand-in for the subset of redis.asyncio.Redis in use."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.fail_with: Optional[Exception] = None
        self.pipelines_executed = 0
        self.closed = False

    async def ping(self) -> bool:
        if self.fail_with is not None:
            raise self.fail_with
        return True

    async def hmget(self, name: str, keys: list[str]) -> list[Optional[str]]:
        if self.fail_with is not None:
            raise self.fail_with
        table = self.hashes.get(name, {})
        return [table.get(key) for key in keys]

    async def hset(self, name: str, mapping: dict[str, str]) -> int:
        table = self.hashes.setdefault(name, {})
        added = sum(1 for key in mapping if key not in table)
        table.update(mapping)
        return added

    async def hkeys(self, name: str) -> list[str]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.hashes.get(name, {}))

    def pipeline(self, transaction: bool = True) -> StubPipeline:
        return StubPipeline(self)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_ids():
    return ScriptedIds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_redis() -> StubRedis:
    return StubRedis()


@pytest.fixture
def host() -> InMemoryHostStore:
    return InMemoryHostStore(id_factory=ScriptedIds())
