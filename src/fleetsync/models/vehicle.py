"""Vehicle model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from fleetsync.ingestion.normalize import safe_str
from fleetsync.models._base import FleetBaseModel, FleetEnum, RecordTimestamp


class VehicleType(FleetEnum):
    """Fleet category."""

    TYPE1 = "type1"
    TYPE2 = "type2"
    UNKNOWN = "unknown"


class VehicleStatus(FleetEnum):
    """Operational status of a vehicle."""

    AVAILABLE = "available"
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


class Vehicle(FleetBaseModel):
    """A fleet vehicle as stored under the vehicles collection."""

    vehicle_number: str = Field(
        default="",
        validation_alias=AliasChoices("vehicleNumber", "vehicle_number"),
    )
    """Plate number; the natural key."""
    storage_key: str = Field(
        default="",
        validation_alias=AliasChoices("firebaseKey", "storageKey", "storage_key"),
    )
    """Key assigned by the remote store when the record was created."""
    type: VehicleType = VehicleType.UNKNOWN
    status: VehicleStatus = VehicleStatus.UNKNOWN
    capacity: str = ""
    route: str = ""
    driver_name: str = ""
    driver_contact: str = ""
    created_at: RecordTimestamp = None
    updated_at: RecordTimestamp = None

    @property
    def natural_key(self) -> str:
        """Plate number, falling back to the storage key."""
        return self.vehicle_number or self.storage_key

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> Any:
        return VehicleType.parse(value)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Any:
        return VehicleStatus.parse(value)

    @field_validator("vehicle_number", "storage_key", "capacity", "route", "driver_name", "driver_contact", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""
