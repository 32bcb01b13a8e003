from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any

import pytest

from fleetsync.exceptions import RemoteWriteError
from fleetsync.state.events import WriteResult


class FakeRemoteStore:
    """In-memory remote store.

    Snapshots are pushed explicitly with :meth:`push`; a new subscriber
    first receives the latest pushed snapshot for its path.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.subscribe_calls = 0
        self.fail_writes_with: str | None = None
        self.raise_on_write: Exception | None = None
        self._snapshots: dict[str, list[Any]] = {}
        self._queues: dict[str, list[asyncio.Queue[Any]]] = defaultdict(list)
        self._next_key = 0

    # -- feed ----------------------------------------------------------

    def push(self, path: str, snapshot: list[Any]) -> None:
        self._snapshots[path] = snapshot
        for queue in self._queues[path]:
            queue.put_nowait(snapshot)

    def fail(self, path: str, exc: Exception) -> None:
        for queue in self._queues[path]:
            queue.put_nowait(exc)

    def subscriber_count(self, path: str) -> int:
        return len(self._queues[path])

    async def subscribe(self, path: str) -> AsyncIterator[list[Any]]:
        self.subscribe_calls += 1
        queue: asyncio.Queue[Any] = asyncio.Queue()
        if path in self._snapshots:
            queue.put_nowait(self._snapshots[path])
        self._queues[path].append(queue)
        try:
            while True:
                item = await queue.get()
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self._queues[path].remove(queue)

    # -- writes --------------------------------------------------------

    def _result(self, operation: str, path: str, key: str | None) -> WriteResult:
        if self.raise_on_write is not None:
            raise self.raise_on_write
        if self.fail_writes_with is not None:
            return WriteResult.from_remote(RemoteWriteError(self.fail_writes_with, operation=operation, path=path))
        return WriteResult.ok(key)

    async def create(self, path: str, record: Mapping[str, Any]) -> WriteResult:
        self.calls.append(("create", path, dict(record)))
        self._next_key += 1
        return self._result("create", path, f"-K{self._next_key}")

    async def update(self, path: str, key: str, fields: Mapping[str, Any]) -> WriteResult:
        self.calls.append(("update", path, key, dict(fields)))
        return self._result("update", path, key)

    async def delete(self, path: str, key: str) -> WriteResult:
        self.calls.append(("delete", path, key))
        return self._result("delete", path, key)


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def settle() -> Callable[[], Awaitable[None]]:
    """Let queued snapshots propagate through subscription tasks."""

    async def _settle() -> None:
        for _ in range(20):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def trip_payload() -> dict[str, Any]:
    return {
        "fromLocation": "Pune",
        "toLocation": "Mumbai",
        "startDate": "2025-01-10",
        "distance": 150,
        "customer": {"name": "Acme Builders", "phone": "9800000000"},
        "materials": [{"material": "Sand", "quantity": 10, "unit": "Tons", "rate": 250}],
        "surcharges": {"transportCharges": 500, "otherCharges": 100},
    }
