"""Normalization helpers.

Centralizes defensive parsing and placeholder handling for records
pushed by the remote store.
"""

from __future__ import annotations

import math
import warnings
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Context, Decimal, DivisionByZero, InvalidOperation, localcontext
from typing import Any

from fleetsync.exceptions import NumericCoercionWarning

_CENT = Decimal("0.01")
_ZERO = Decimal("0")

# Cost arithmetic context: wide enough that cents stay exact for any
# float-range amount. Overflow and invalid results come back as
# Infinity/NaN instead of raising and are coerced by the callers.
MONEY_CONTEXT = Context(prec=1000, rounding=ROUND_HALF_UP, traps=[DivisionByZero])

# Epoch values above this are treated as milliseconds.
_MS_THRESHOLD = 1e11


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def to_decimal(value: Any, *, field: str = "value") -> Decimal:
    """Coerce a cost-relevant value to ``Decimal``.

    Missing values (``None``, ``""``) are 0. Present but non-numeric values
    are also 0 and emit :class:`NumericCoercionWarning`.
    """
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        result = None
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return _ZERO
        try:
            result = Decimal(text)
        except InvalidOperation:
            result = None
    else:
        result = None

    if result is None or not result.is_finite():
        warnings.warn(
            f"non-numeric {field} {value!r} coerced to 0",
            NumericCoercionWarning,
            stacklevel=2,
        )
        return _ZERO
    return result


def finite_or_zero(value: Decimal, *, field: str = "amount") -> Decimal:
    """Return *value*, or 0 with :class:`NumericCoercionWarning` when it is not finite."""
    if value.is_finite():
        return value
    warnings.warn(
        f"{field} out of range coerced to 0",
        NumericCoercionWarning,
        stacklevel=2,
    )
    return _ZERO


def round2(value: Decimal, *, field: str = "amount") -> Decimal:
    """Round to 2 decimal places, half-up.

    Amounts too large to hold at cent resolution are 0 and emit
    :class:`NumericCoercionWarning`.
    """
    with localcontext(MONEY_CONTEXT):
        result = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    return finite_or_zero(result, field=field)


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a write payload."""

    if value is None:
        return False
    if value == "":
        return False
    if value == "--":
        return False
    if value == {}:
        return False
    return bool(value != [])


def prune_patch(data: Any) -> Any:
    """Recursively drop non-meaningful values from a payload structure.

    - Dicts: remove keys with non-meaningful values; recurse into nested dicts/lists.
    - Lists: prune elements; list positions are kept only for meaningful items.
    - Scalars: returned as-is.
    """

    if isinstance(data, dict):
        pruned: dict[str, Any] = {}
        for key, value in data.items():
            cleaned = prune_patch(value)
            if is_meaningful(cleaned):
                pruned[key] = cleaned
        return pruned

    if isinstance(data, list):
        items: list[Any] = []
        for item in data:
            cleaned = prune_patch(item)
            if is_meaningful(cleaned):
                items.append(cleaned)
        return items

    return data


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize record timestamps to epoch seconds.

    - Empty/missing/unparseable -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    - ISO-8601 strings -> seconds (naive values are taken as UTC)
    """

    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return dt.timestamp()
    ts = safe_float(value)
    if ts is None:
        if not isinstance(value, str):
            return None
        try:
            dt = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        ts = dt.timestamp()
    if ts <= 0:
        return None
    if ts > _MS_THRESHOLD:
        ts /= 1000.0
    return ts


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an epoch (seconds or ms) or ISO-8601 value to a UTC datetime."""
    seconds = normalize_timestamp_seconds(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def utc_now_iso() -> str:
    """Current UTC time in the ISO-8601 form written to the store."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
