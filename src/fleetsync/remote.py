"""Remote store interface and the realtime database implementation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from fleetsync._stream import SnapshotTree
from fleetsync._transport import Transport
from fleetsync.exceptions import FleetTransportError, RemoteWriteError
from fleetsync.ingestion.snapshot import flatten_snapshot
from fleetsync.state.events import WriteResult

_logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    """What the sync orchestrator needs from a remote collection store.

    ``subscribe`` yields the full, flattened collection after every change,
    starting with the initial value. Writes never raise; failures are
    returned as :class:`WriteResult` values.
    """

    def subscribe(self, path: str) -> AsyncIterator[list[Any]]:
        ...

    async def create(self, path: str, record: Mapping[str, Any]) -> WriteResult:
        ...

    async def update(self, path: str, key: str, fields: Mapping[str, Any]) -> WriteResult:
        ...

    async def delete(self, path: str, key: str) -> WriteResult:
        ...


class RealtimeDatabase:
    """:class:`RemoteStore` backed by the realtime database REST API."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def subscribe(self, path: str) -> AsyncIterator[list[Any]]:
        tree = SnapshotTree()
        async for event, event_path, data in self._transport.stream(path):
            tree.apply(event, event_path, data)
            yield flatten_snapshot(tree.root)

    async def create(self, path: str, record: Mapping[str, Any]) -> WriteResult:
        try:
            body = await self._transport.request_json("POST", path, record)
        except FleetTransportError as exc:
            return self._failed("create", path, exc)
        key = body.get("name") if isinstance(body, dict) else None
        _logger.debug("Created %s/%s", path, key)
        return WriteResult.ok(str(key) if key is not None else None)

    async def update(self, path: str, key: str, fields: Mapping[str, Any]) -> WriteResult:
        target = f"{path.rstrip('/')}/{key}"
        try:
            await self._transport.request_json("PATCH", target, fields)
        except FleetTransportError as exc:
            return self._failed("update", target, exc)
        return WriteResult.ok(key)

    async def delete(self, path: str, key: str) -> WriteResult:
        target = f"{path.rstrip('/')}/{key}"
        try:
            await self._transport.request_json("DELETE", target)
        except FleetTransportError as exc:
            return self._failed("delete", target, exc)
        return WriteResult.ok(key)

    @staticmethod
    def _failed(operation: str, path: str, exc: FleetTransportError) -> WriteResult:
        _logger.warning("Remote %s of %s failed: %s", operation, path, exc)
        return WriteResult.from_remote(RemoteWriteError(str(exc), operation=operation, path=path))
