"""Trip, customer and material line models."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from fleetsync.config import DEFAULT_TAX_RATE
from fleetsync.costing import CostBreakdown, compute_cost, line_amount
from fleetsync.ingestion.normalize import safe_float, safe_str
from fleetsync.models._base import FleetBaseModel, FleetEnum, RecordTimestamp

# Flat keys written by the original dashboard forms, lifted into nested models.
_FLAT_CUSTOMER_KEYS: dict[str, str] = {
    "customerName": "name",
    "customerPhone": "phone",
    "customerAddress": "address",
    "gstNumber": "taxId",
}
_FLAT_SURCHARGE_KEYS = ("transportCharges", "otherCharges")


class TripStatus(FleetEnum):
    """Trip lifecycle status."""

    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    UNKNOWN = "unknown"


class MaterialUnit(FleetEnum):
    """Unit a material quantity is measured in."""

    TONS = "Tons"
    BAGS = "Bags"
    BRASS = "brass"
    PIECES = "Pieces"
    KG = "Kg"
    UNKNOWN = "unknown"


class Customer(FleetBaseModel):
    """Customer billed for a trip."""

    name: str = ""
    phone: str = ""
    address: str = ""
    tax_id: str = Field(default="", validation_alias=AliasChoices("taxId", "tax_id", "gstNumber"))

    @field_validator("name", "phone", "address", "tax_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""


class MaterialLine(FleetBaseModel):
    """One material line item of a trip.

    ``quantity`` and ``rate`` keep whatever the store holds; numeric coercion
    happens in :mod:`fleetsync.costing` so malformed values never fail parsing.
    """

    material: str = ""
    quantity: Any = None
    unit: MaterialUnit = MaterialUnit.TONS
    rate: Any = None

    @property
    def amount(self) -> Decimal:
        """``round2(quantity * rate)``; malformed inputs count as 0."""
        return line_amount(self)

    @property
    def is_fully_specified(self) -> bool:
        """Material named and both quantity and rate strictly positive."""
        if not self.material.strip():
            return False
        quantity = safe_float(self.quantity)
        rate = safe_float(self.rate)
        return quantity is not None and rate is not None and quantity > 0 and rate > 0

    @field_validator("unit", mode="before")
    @classmethod
    def _parse_unit(cls, value: Any) -> Any:
        return MaterialUnit.parse(value)

    @field_validator("material", mode="before")
    @classmethod
    def _coerce_material(cls, value: Any) -> str:
        return safe_str(value) or ""


class Surcharges(FleetBaseModel):
    """Charges added on top of the materials total."""

    transport_charges: Any = None
    other_charges: Any = None


class Trip(FleetBaseModel):
    """A trip as stored under the trips collection.

    The cost breakdown is never read from the store; it is always derived
    from ``material_lines`` and ``surcharges``.
    """

    trip_id: str = Field(default="", validation_alias=AliasChoices("tripId", "trip_id"))
    order_id: str = Field(default="", validation_alias=AliasChoices("orderId", "order_id"))
    storage_key: str = Field(
        default="",
        validation_alias=AliasChoices("firebaseKey", "storageKey", "storage_key"),
    )
    vehicle_number: str = Field(
        default="",
        validation_alias=AliasChoices("vehicleNumber", "vehicleRef", "vehicle_number"),
    )
    driver_name: str = ""
    driver_contact: str = ""
    from_location: str = ""
    to_location: str = ""
    start_date: RecordTimestamp = None
    estimated_end_date: RecordTimestamp = None
    distance: Any = None
    customer: Customer = Field(default_factory=Customer)
    material_lines: tuple[MaterialLine, ...] = Field(
        default=(),
        validation_alias=AliasChoices("materials", "materialLines", "material_lines"),
    )
    surcharges: Surcharges = Field(default_factory=Surcharges)
    status: TripStatus = TripStatus.UNKNOWN
    created_at: RecordTimestamp = None
    updated_at: RecordTimestamp = None

    @property
    def natural_key(self) -> str:
        """Trip id, falling back to the storage key."""
        return self.trip_id or self.storage_key

    @property
    def cost_breakdown(self) -> CostBreakdown:
        """Cost breakdown at the default tax rate."""
        return self.compute_cost()

    def compute_cost(self, *, tax_rate: Decimal = DEFAULT_TAX_RATE) -> CostBreakdown:
        return compute_cost(self.material_lines, self.surcharges, tax_rate=tax_rate)

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_fields(cls, values: Any) -> Any:
        """Accept the flat customer/surcharge keys alongside the nested form."""
        if not isinstance(values, dict):
            return values
        working = dict(values)
        working.setdefault("raw", dict(values))

        if not isinstance(working.get("customer"), dict):
            customer = {nested: working[flat] for flat, nested in _FLAT_CUSTOMER_KEYS.items() if flat in working}
            if customer:
                working["customer"] = customer

        if not isinstance(working.get("surcharges"), dict):
            surcharges = {key: working[key] for key in _FLAT_SURCHARGE_KEYS if key in working}
            if surcharges:
                working["surcharges"] = surcharges

        materials = working.get("materials")
        if isinstance(materials, dict):
            # Arrays written back by the store may arrive as index-keyed objects.
            working["materials"] = [materials[key] for key in sorted(materials, key=_index_sort_key)]
        return working

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> Any:
        return TripStatus.parse(value)

    @field_validator("material_lines", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return tuple(item for item in value if isinstance(item, dict | MaterialLine))
        return value

    @field_validator(
        "trip_id",
        "order_id",
        "storage_key",
        "vehicle_number",
        "driver_name",
        "driver_contact",
        "from_location",
        "to_location",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""


def _index_sort_key(key: str) -> tuple[int, str]:
    return (int(key), "") if key.isdigit() else (1 << 30, key)
