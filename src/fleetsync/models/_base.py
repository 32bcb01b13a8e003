"""Base model and enum for fleet records.

Every record model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase store keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel values
  (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original record.

Status/category enums inherit from :class:`FleetEnum` which adds an
``UNKNOWN`` member and a ``_missing_`` hook that returns ``UNKNOWN`` for
any value without a mapped member.
"""

from __future__ import annotations

import enum
import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from fleetsync.ingestion.normalize import parse_timestamp

# Sentinel strings that mean "not filled in".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})


RecordTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch seconds/ms or ISO-8601 strings to UTC datetimes."""


class FleetEnum(enum.StrEnum):
    """Base for record status/category enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``. Matching is
    case-insensitive; values without a mapped member resolve to ``UNKNOWN``
    instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> FleetEnum:
        if isinstance(value, str):
            folded = value.strip().casefold()
            for member in cls:
                if member.value.casefold() == folded:
                    return member
        unknown: FleetEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown

    @classmethod
    def parse(cls, value: Any) -> Any:
        """``mode="before"`` validator hook: map wire values onto members."""
        if value is None or isinstance(value, cls):
            return value
        return cls(str(value))


class FleetBaseModel(BaseModel):
    """Base for fleet record models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * sentinel values (``""``, ``"--"``, NaN) → dropped so
      the field default is used instead
    * Stashes the original record dict in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original record dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw record."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = FleetBaseModel._clean_dict(original)

        # Only auto-stash raw when not explicitly provided.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
