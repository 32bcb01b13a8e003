"""Collection sync orchestration.

A :class:`CollectionSync` owns the local view of one remote collection. It
subscribes to snapshots, runs each through the reconciler and model
parsing, and republishes the resulting immutable tuple. Writes go straight
to the remote store; the local view only ever changes when the store
pushes the next snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from fleetsync.exceptions import (
    EntityValidationError,
    FleetStreamError,
    MalformedRecordError,
    RemoteWriteError,
)
from fleetsync.ingestion.normalize import safe_str, utc_now_iso
from fleetsync.remote import RemoteStore
from fleetsync.state.events import SyncState, WriteResult
from fleetsync.state.reconcile import ReconcileResult, reconcile
from fleetsync.validation import EntityAdapter

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

UpdateCallback = Callable[[tuple[Any, ...]], None]


class SubscriptionHandle:
    """One live subscription. Close it to stop delivery."""

    def __init__(self, sync: CollectionSync[Any], on_update: UpdateCallback) -> None:
        self._sync = sync
        self._on_update = on_update
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop delivery immediately; no callback fires after this returns."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            self._task.cancel()
        self._sync._release(self)

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def __aenter__(self) -> SubscriptionHandle:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
        await self.wait_closed()

    def _deliver(self, items: tuple[Any, ...]) -> None:
        if self._closed:
            return
        try:
            self._on_update(items)
        except Exception:
            _logger.debug("Subscription callback failed", exc_info=True)


class CollectionSync(Generic[ModelT]):
    """Local view and write path for one collection.

    Parameters
    ----------
    remote
        Remote store the collection lives in.
    adapter
        Identity, parsing and validation rules for the collection's records.
    path
        Collection path in the store.
    reconnect_delay
        Seconds to wait before re-subscribing after a stream failure.
    """

    def __init__(
        self,
        remote: RemoteStore,
        adapter: EntityAdapter[ModelT],
        *,
        path: str,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._remote = remote
        self._adapter = adapter
        self._path = path
        self._reconnect_delay = reconnect_delay
        self._handles: set[SubscriptionHandle] = set()
        self._state = SyncState.IDLE
        self._current: tuple[ModelT, ...] = ()
        self._last_result = ReconcileResult()
        self._last_error: str | None = None
        self._pending = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def current(self) -> tuple[ModelT, ...]:
        """Latest reconciled collection."""
        return self._current

    @property
    def last_result(self) -> ReconcileResult:
        """Diagnostics of the latest reconciliation pass."""
        return self._last_result

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def pending(self) -> int:
        """Number of writes currently in flight."""
        return self._pending

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, on_update: UpdateCallback) -> SubscriptionHandle:
        """Start delivering reconciled snapshots to *on_update*.

        Must be called from a running event loop.
        """
        handle = SubscriptionHandle(self, on_update)
        self._handles.add(handle)
        if self._state == SyncState.IDLE:
            self._state = SyncState.SUBSCRIBED
        handle._task = asyncio.create_task(self._run(handle), name=f"fleetsync-sync-{self._path}")
        _logger.debug("Subscribed to %s (%d handle(s))", self._path, len(self._handles))
        return handle

    def _release(self, handle: SubscriptionHandle) -> None:
        self._handles.discard(handle)
        if not self._handles:
            self._state = SyncState.IDLE
        _logger.debug("Subscription to %s closed (%d handle(s) left)", self._path, len(self._handles))

    async def _run(self, handle: SubscriptionHandle) -> None:
        while not handle.closed:
            try:
                async for snapshot in self._remote.subscribe(self._path):
                    if handle.closed:
                        return
                    handle._deliver(self._ingest(snapshot))
                if handle.closed:
                    return
                raise FleetStreamError(f"Stream {self._path} closed by the server", path=self._path)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if handle.closed:
                    return
                self._state = SyncState.ERROR
                self._last_error = str(exc)
                _logger.warning("Feed for %s failed; retrying in %.1fs: %s", self._path, self._reconnect_delay, exc)
                _logger.debug("Feed failure detail", exc_info=True)
            await asyncio.sleep(self._reconnect_delay)

    def _ingest(self, snapshot: list[Any]) -> tuple[ModelT, ...]:
        """Reconcile one snapshot and swap it in as the current view."""
        result = reconcile(snapshot, self._adapter.policy)

        items: list[ModelT] = []
        rejected: list[MalformedRecordError] = []
        for key, record in result.records.items():
            try:
                items.append(self._adapter.model.model_validate(record))
            except Exception as exc:
                _logger.debug("Record %s failed model validation: %s", key, exc, exc_info=True)
                rejected.append(MalformedRecordError(f"record {key!r} failed validation: {exc}", record=record))

        if rejected:
            _logger.warning("Dropped %d record(s) from %s that failed validation", len(rejected), self._path)
            result = dataclasses.replace(result, malformed=result.malformed + tuple(rejected))

        self._last_result = result
        self._current = tuple(items)
        if self._handles:
            self._state = SyncState.SUBSCRIBED
        return self._current

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def find(self, key: str) -> ModelT | None:
        """Look up a record in the current view by natural or storage key."""
        for item in self._current:
            if self._adapter.natural_key(item) == key:
                return item
        for item in self._current:
            if self._adapter.storage_key(item) == key:
                return item
        return None

    def _storage_key_for(self, key: str, current: ModelT | None) -> str:
        if current is not None:
            return self._adapter.storage_key(current) or key
        return key

    async def create(self, entity: Mapping[str, Any]) -> WriteResult:
        """Validate *entity* and create it remotely.

        On success ``WriteResult.id`` is the store-assigned key. The record
        shows up in :attr:`current` with the next snapshot.
        """
        try:
            record = self._adapter.prepare_create(entity)
        except EntityValidationError as exc:
            return self._finish(WriteResult.from_validation(exc))

        now = utc_now_iso()
        record["createdAt"] = now
        record["updatedAt"] = now
        return await self._write("create", self._path, self._remote.create, self._path, record)

    async def update(self, key: str, fields: Mapping[str, Any]) -> WriteResult:
        """Patch the record identified by *key* (natural or storage key)."""
        key_text = safe_str(key)
        if key_text is None:
            return self._finish(WriteResult.from_validation(EntityValidationError("key is required", field="key")))

        current = self.find(key_text)
        try:
            patch = self._adapter.prepare_update(fields, current)
        except EntityValidationError as exc:
            return self._finish(WriteResult.from_validation(exc))

        patch["updatedAt"] = utc_now_iso()
        storage_key = self._storage_key_for(key_text, current)
        return await self._write(
            "update",
            f"{self._path}/{storage_key}",
            self._remote.update,
            self._path,
            storage_key,
            patch,
        )

    async def delete(self, key: str) -> WriteResult:
        """Delete the record identified by *key* (natural or storage key)."""
        key_text = safe_str(key)
        if key_text is None:
            return self._finish(WriteResult.from_validation(EntityValidationError("key is required", field="key")))

        storage_key = self._storage_key_for(key_text, self.find(key_text))
        return await self._write(
            "delete",
            f"{self._path}/{storage_key}",
            self._remote.delete,
            self._path,
            storage_key,
        )

    async def _write(
        self,
        operation: str,
        path: str,
        call: Callable[..., Awaitable[WriteResult]],
        *args: Any,
    ) -> WriteResult:
        self._pending += 1
        try:
            result = await call(*args)
        except Exception as exc:
            _logger.debug("Remote %s of %s raised", operation, path, exc_info=True)
            result = WriteResult.from_remote(RemoteWriteError(str(exc), operation=operation, path=path))
        finally:
            self._pending -= 1
        return self._finish(result)

    def _finish(self, result: WriteResult) -> WriteResult:
        if not result.success:
            self._last_error = result.error
        return result
