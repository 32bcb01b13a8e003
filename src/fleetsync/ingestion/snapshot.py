"""Collection snapshot flattening.

The realtime database delivers a collection as a tree keyed by the
store-assigned key. Consumers work on a flat list of records, each carrying
its storage key under :data:`STORAGE_KEY_FIELD`.
"""

from __future__ import annotations

import copy
from typing import Any

STORAGE_KEY_FIELD = "firebaseKey"


def flatten_snapshot(data: Any) -> list[Any]:
    """Turn a collection snapshot value into a list of raw records.

    - ``None`` (empty collection) -> ``[]``
    - dict -> one record per child, with the child key injected
    - list (the store renders integer-keyed children as arrays) -> one
      record per non-null element, keyed by its index

    Children that are not objects are passed through untouched so the
    reconciler can count them as malformed.
    """

    if data is None:
        return []

    if isinstance(data, dict):
        items = list(data.items())
    elif isinstance(data, list):
        items = [(str(index), value) for index, value in enumerate(data) if value is not None]
    else:
        return [data]

    records: list[Any] = []
    for key, value in items:
        if isinstance(value, dict):
            record = copy.deepcopy(value)
            record[STORAGE_KEY_FIELD] = str(key)
            records.append(record)
        else:
            records.append(value)
    return records
