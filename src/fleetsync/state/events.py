"""Sync lifecycle states and write outcomes.

Write outcomes are returned as values, never raised across the
subscription boundary.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from fleetsync.exceptions import EntityValidationError, RemoteWriteError


class SyncState(StrEnum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    ERROR = "error"


class WriteErrorKind(StrEnum):
    VALIDATION = "validation"
    REMOTE = "remote"


class WriteResult(BaseModel):
    """Outcome of a create/update/delete.

    ``id`` is the store-assigned key for successful creates. On failure,
    ``error`` carries the message verbatim (the store's own message for
    remote failures) and ``field`` names the offending field for
    validation failures.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    id: str | None = None
    error: str | None = None
    error_kind: WriteErrorKind | None = None
    field: str | None = None

    @classmethod
    def ok(cls, id: str | None = None) -> WriteResult:  # noqa: A002
        return cls(success=True, id=id)

    @classmethod
    def from_validation(cls, exc: EntityValidationError) -> WriteResult:
        return cls(
            success=False,
            error=str(exc),
            error_kind=WriteErrorKind.VALIDATION,
            field=exc.field or None,
        )

    @classmethod
    def from_remote(cls, exc: RemoteWriteError) -> WriteResult:
        return cls(success=False, error=str(exc), error_kind=WriteErrorKind.REMOTE)
