"""Record reconciliation.

This is the only component allowed to decide which of several raw records
sharing an identity survives. Given the same input sequence it always
produces the same result.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from fleetsync._redact import redact_for_log
from fleetsync.exceptions import MalformedRecordError
from fleetsync.state.policy import KeyPolicy, record_timestamp, should_replace

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation pass.

    ``records`` is keyed by natural key, in first-seen order. ``superseded``
    counts every record dropped in favour of a newer (or first-seen, on
    ties) record sharing its identity.
    """

    records: dict[str, dict[str, Any]] = field(default_factory=dict)
    malformed: tuple[MalformedRecordError, ...] = ()
    superseded: int = 0


@dataclass
class _Slot:
    key: str
    storage_key: str | None
    timestamp: float
    record: dict[str, Any]


def reconcile(raw_records: Iterable[Any], policy: KeyPolicy) -> ReconcileResult:
    """Deduplicate a raw record sequence into one entry per identity.

    A record matches an existing entry by natural key first, then by storage
    key. It replaces the entries it matches only if it is strictly newer
    than all of them (last-write-wins, ties keep what is stored). The winner
    takes the position of the earliest matched entry, so no two surviving
    entries share a natural key or a storage key.
    """

    slots: dict[int, _Slot] = {}
    by_natural: dict[str, int] = {}
    by_storage: dict[str, int] = {}
    malformed: list[MalformedRecordError] = []
    superseded = 0
    next_slot = 0

    for raw in raw_records:
        try:
            key = policy.derive_natural_key(raw)
        except MalformedRecordError as exc:
            _logger.debug("Skipping malformed record: %s record=%s", exc, redact_for_log(raw))
            malformed.append(exc)
            continue

        storage_key = policy.storage_key(raw)
        timestamp = record_timestamp(raw)

        matched: list[int] = []
        for candidate in (by_natural.get(key), by_storage.get(storage_key) if storage_key else None):
            if candidate is not None and candidate not in matched:
                matched.append(candidate)

        if not matched:
            slot_id = next_slot
            next_slot += 1
        elif all(should_replace(stored_ts=slots[s].timestamp, incoming_ts=timestamp) for s in matched):
            slot_id = min(matched)
            for sid in matched:
                old = slots.pop(sid)
                by_natural.pop(old.key, None)
                if old.storage_key:
                    by_storage.pop(old.storage_key, None)
            superseded += len(matched)
        else:
            superseded += 1
            continue

        slots[slot_id] = _Slot(key=key, storage_key=storage_key, timestamp=timestamp, record=copy.deepcopy(dict(raw)))
        by_natural[key] = slot_id
        if storage_key:
            by_storage[storage_key] = slot_id

    if malformed:
        _logger.warning("Reconciliation skipped %d malformed record(s)", len(malformed))
    if superseded:
        _logger.debug("Reconciliation dropped %d superseded record(s)", superseded)

    records = {slots[sid].key: slots[sid].record for sid in sorted(slots)}
    return ReconcileResult(records=records, malformed=tuple(malformed), superseded=superseded)
