"""Custom exception hierarchy for fleetsync."""

from __future__ import annotations


class FleetError(Exception):
    """Base exception for all fleetsync errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class EntityValidationError(FleetError):
    """A record failed local validation before a write was attempted.

    Never sent to the remote store; surfaced to the caller as a failed
    :class:`fleetsync.state.events.WriteResult`.
    """

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class FleetTransportError(FleetError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


class FleetStreamError(FleetTransportError):
    """The realtime stream was cancelled or its credentials revoked."""


class RemoteWriteError(FleetError):
    """The remote store rejected or failed a create/update/delete."""

    def __init__(self, message: str, *, operation: str = "", path: str = "") -> None:
        self.operation = operation
        self.path = path
        super().__init__(message)


class MalformedRecordError(FleetError):
    """A pushed record has no derivable key.

    Non-fatal: the reconciler skips the record and keeps processing.
    """

    def __init__(self, message: str, *, record: object = None) -> None:
        self.record = record
        super().__init__(message)


class NumericCoercionWarning(UserWarning):
    """A cost-relevant field was non-numeric and has been coerced to 0."""
