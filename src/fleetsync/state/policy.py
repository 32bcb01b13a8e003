"""Deterministic identity and conflict policy.

This module intentionally contains *no* merging. It answers two questions
for the reconciler: which key identifies a record, and whether an incoming
record beats a stored one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from fleetsync.exceptions import MalformedRecordError
from fleetsync.ingestion.normalize import normalize_timestamp_seconds, safe_str


@dataclass(frozen=True)
class KeyPolicy:
    """Ordered key-derivation fallback list for one entity kind.

    The natural key is the first non-empty ``natural_fields`` value, falling
    back to the first non-empty ``storage_fields`` value.
    """

    natural_fields: tuple[str, ...]
    storage_fields: tuple[str, ...]

    def natural_key(self, record: Mapping[str, Any]) -> str | None:
        return _first_text(record, self.natural_fields)

    def storage_key(self, record: Mapping[str, Any]) -> str | None:
        return _first_text(record, self.storage_fields)

    def derive_natural_key(self, record: Any) -> str:
        """Return the record's identity or raise :class:`MalformedRecordError`."""
        if not isinstance(record, Mapping):
            raise MalformedRecordError(f"record is not an object: {type(record).__name__}", record=record)
        key = self.natural_key(record) or self.storage_key(record)
        if key is None:
            raise MalformedRecordError("record has neither a natural key nor a storage key", record=record)
        return key


VEHICLE_KEY_POLICY = KeyPolicy(
    natural_fields=("vehicleNumber", "vehicle_number"),
    storage_fields=("firebaseKey", "storageKey", "storage_key", "id"),
)

TRIP_KEY_POLICY = KeyPolicy(
    natural_fields=("tripId", "trip_id"),
    storage_fields=("firebaseKey", "storageKey", "storage_key", "id"),
)


def _first_text(record: Mapping[str, Any], fields: tuple[str, ...]) -> str | None:
    for name in fields:
        text = safe_str(record.get(name))
        if text is not None:
            return text
    return None


def record_timestamp(record: Mapping[str, Any]) -> float:
    """``updatedAt``, else ``createdAt``, else 0 - as epoch seconds."""
    for name in ("updatedAt", "updated_at", "createdAt", "created_at"):
        ts = normalize_timestamp_seconds(record.get(name))
        if ts is not None:
            return ts
    return 0.0


def should_replace(*, stored_ts: float, incoming_ts: float) -> bool:
    """Last-write-wins; ties keep the stored entry."""
    return incoming_ts > stored_ts
