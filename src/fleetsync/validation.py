"""Entity validation and write preparation.

Each adapter knows, for one collection, how records are identified, how they
parse into models, and which cheap synchronous checks a write must pass
before anything is sent to the remote store.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from fleetsync.config import DEFAULT_TAX_RATE
from fleetsync.costing import CostBreakdown, compute_cost
from fleetsync.exceptions import EntityValidationError
from fleetsync.ingestion.normalize import prune_patch, safe_str
from fleetsync.ingestion.snapshot import STORAGE_KEY_FIELD
from fleetsync.models.trip import Customer, MaterialLine, Surcharges, Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleStatus, VehicleType
from fleetsync.state.policy import TRIP_KEY_POLICY, VEHICLE_KEY_POLICY, KeyPolicy

ModelT = TypeVar("ModelT", bound=BaseModel)

# Fields the store owns; never accepted from callers.
_STORE_OWNED = frozenset({STORAGE_KEY_FIELD, "storageKey", "createdAt", "updatedAt"})

# Derived trip fields that only the costing engine may write.
_DERIVED_TRIP_FIELDS = frozenset({"costBreakdown", "materialsTotal", "subtotal", "gst", "tax", "total"})


def camel_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Convert top-level ``snake_case`` keys to the store's camelCase."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if "_" in key:
            head, *rest = key.split("_")
            key = head + "".join(part[:1].upper() + part[1:] for part in rest)
        result[key] = value
    return result


def _require_text(record: Mapping[str, Any], field: str, label: str | None = None) -> str:
    text = safe_str(record.get(field))
    if text is None:
        raise EntityValidationError(f"{label or field} is required", field=field)
    return text


def _require_member(enum_cls: Any, value: Any, field: str) -> str:
    member = enum_cls(str(value))
    if member == enum_cls.UNKNOWN:
        raise EntityValidationError(f"{field} {value!r} is not one of {_members(enum_cls)}", field=field)
    return str(member.value)


def _members(enum_cls: Any) -> str:
    return ", ".join(m.value for m in enum_cls if m != enum_cls.UNKNOWN)


def _parse(model: type[ModelT], data: Any, field: str) -> ModelT:
    """Validate *data* into *model*, reporting failures as :class:`EntityValidationError`."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        raise EntityValidationError(first.get("msg", str(exc)), field=f"{field}.{loc}" if loc else field) from exc


class EntityAdapter(Generic[ModelT]):
    """Per-collection identity, parsing and write rules."""

    kind: ClassVar[str]
    model: type[ModelT]
    policy: KeyPolicy

    def prepare_create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def prepare_update(self, fields: Mapping[str, Any], current: ModelT | None) -> dict[str, Any]:
        raise NotImplementedError

    def natural_key(self, item: ModelT) -> str:
        return str(getattr(item, "natural_key"))

    def storage_key(self, item: ModelT) -> str:
        return str(getattr(item, "storage_key", ""))


class VehicleAdapter(EntityAdapter[Vehicle]):
    kind = "vehicle"
    model = Vehicle
    policy = VEHICLE_KEY_POLICY

    def prepare_create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        record = {k: v for k, v in camel_keys(data).items() if k not in _STORE_OWNED}
        record["vehicleNumber"] = _require_text(record, "vehicleNumber", "vehicle number")
        _require_text(record, "driverName", "driver name")
        _require_text(record, "route")
        record["status"] = _require_member(VehicleStatus, record.get("status") or VehicleStatus.AVAILABLE, "status")
        if record.get("type") is not None:
            record["type"] = _require_member(VehicleType, record["type"], "type")
        return prune_patch(record)

    def prepare_update(self, fields: Mapping[str, Any], current: Vehicle | None) -> dict[str, Any]:
        patch = {k: v for k, v in camel_keys(fields).items() if k not in _STORE_OWNED}
        for field, label in (("vehicleNumber", "vehicle number"), ("driverName", "driver name"), ("route", "route")):
            if field in patch:
                patch[field] = _require_text(patch, field, label)
        if "status" in patch:
            patch["status"] = _require_member(VehicleStatus, patch["status"], "status")
        if "type" in patch:
            patch["type"] = _require_member(VehicleType, patch["type"], "type")
        return patch


def generate_trip_ids(now: datetime | None = None) -> tuple[str, str]:
    """Return a fresh ``(trip_id, order_id)`` pair sharing one random suffix."""
    now = now or datetime.now(UTC)
    suffix = f"{now:%Y%m%d}-{secrets.token_hex(3).upper()}"
    return f"TRIP-{suffix}", f"ORD-{suffix}"


def _material_to_wire(line: MaterialLine) -> dict[str, Any]:
    return {
        "material": line.material,
        "quantity": line.quantity,
        "unit": line.unit.value,
        "rate": line.rate,
        "amount": float(line.amount),
    }


def _surcharges_to_wire(surcharges: Surcharges) -> dict[str, Any]:
    return {
        "transportCharges": surcharges.transport_charges if surcharges.transport_charges is not None else 0,
        "otherCharges": surcharges.other_charges if surcharges.other_charges is not None else 0,
    }


def _cost_fields(breakdown: CostBreakdown) -> dict[str, Any]:
    return {
        "costBreakdown": breakdown.to_wire(),
        "materialsTotal": float(breakdown.materials_total),
        "subtotal": float(breakdown.subtotal),
        "gst": float(breakdown.tax),
        "total": float(breakdown.total),
    }


def _customer_to_wire(customer: Customer) -> dict[str, Any]:
    return {"name": customer.name, "phone": customer.phone, "address": customer.address, "taxId": customer.tax_id}


def _validate_customer(customer: Customer) -> None:
    if not customer.name:
        raise EntityValidationError("customer name is required", field="customer.name")
    if not customer.phone:
        raise EntityValidationError("customer phone is required", field="customer.phone")


class TripAdapter(EntityAdapter[Trip]):
    """Trip write rules.

    Every write that touches material lines or surcharges carries a cost
    breakdown recomputed from exactly the inputs being persisted.
    """

    kind = "trip"
    model = Trip
    policy = TRIP_KEY_POLICY

    def __init__(self, *, tax_rate: Decimal = DEFAULT_TAX_RATE) -> None:
        self.tax_rate = tax_rate

    def prepare_create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        record = {k: v for k, v in camel_keys(data).items() if k not in _STORE_OWNED | _DERIVED_TRIP_FIELDS}
        trip = _parse(Trip, record, "trip")

        if not trip.from_location:
            raise EntityValidationError("from location is required", field="fromLocation")
        if not trip.to_location:
            raise EntityValidationError("to location is required", field="toLocation")
        if trip.start_date is None:
            raise EntityValidationError("start date is required", field="startDate")
        if not any(line.is_fully_specified for line in trip.material_lines):
            raise EntityValidationError(
                "at least one material with quantity and rate is required",
                field="materials",
            )
        _validate_customer(trip.customer)

        trip_id, order_id = generate_trip_ids()
        record["tripId"] = trip.trip_id or trip_id
        record["orderId"] = trip.order_id or order_id
        record["status"] = _require_member(TripStatus, record.get("status") or TripStatus.PLANNED, "status")
        record["customer"] = prune_patch(_customer_to_wire(trip.customer))
        record["materials"] = [_material_to_wire(line) for line in trip.material_lines]
        record["surcharges"] = _surcharges_to_wire(trip.surcharges)
        for flat in ("customerName", "customerPhone", "customerAddress", "gstNumber", "transportCharges", "otherCharges"):
            record.pop(flat, None)
        record.pop("materialLines", None)
        record.update(_cost_fields(trip.compute_cost(tax_rate=self.tax_rate)))
        return prune_patch(record)

    def prepare_update(self, fields: Mapping[str, Any], current: Trip | None) -> dict[str, Any]:
        patch = {k: v for k, v in camel_keys(fields).items() if k not in _STORE_OWNED}
        derived = sorted(_DERIVED_TRIP_FIELDS & patch.keys())
        if derived:
            raise EntityValidationError(
                f"{derived[0]} is derived from materials and surcharges and cannot be set directly",
                field=derived[0],
            )

        if "tripId" in patch:
            patch["tripId"] = _require_text(patch, "tripId", "trip id")
        if "status" in patch:
            patch["status"] = _require_member(TripStatus, patch["status"], "status")
        if "customer" in patch:
            if not isinstance(patch["customer"], Mapping):
                raise EntityValidationError("customer must be an object", field="customer")
            merged = _customer_to_wire(current.customer) if current is not None else {}
            merged.update(patch["customer"])
            customer = _parse(Customer, merged, "customer")
            _validate_customer(customer)
            patch["customer"] = prune_patch(_customer_to_wire(customer))

        if "materialLines" in patch:
            patch["materials"] = patch.pop("materialLines")
        for flat in ("transportCharges", "otherCharges"):
            if flat in patch:
                patch.setdefault("surcharges", {})
                if isinstance(patch["surcharges"], Mapping):
                    patch["surcharges"] = {**patch["surcharges"], flat: patch.pop(flat)}

        touches_materials = "materials" in patch
        touches_surcharges = "surcharges" in patch
        if not (touches_materials or touches_surcharges):
            return patch

        if current is None and not (touches_materials and touches_surcharges):
            raise EntityValidationError(
                "cannot recompute the cost breakdown: trip is not in the local view; "
                "send both materials and surcharges",
                field="materials" if not touches_materials else "surcharges",
            )

        if touches_materials:
            raw_lines = patch["materials"]
            if not isinstance(raw_lines, list | tuple):
                raise EntityValidationError("materials must be a list", field="materials")
            lines = tuple(
                line if isinstance(line, MaterialLine) else _parse(MaterialLine, line, "materials")
                for line in raw_lines
                if isinstance(line, Mapping | MaterialLine)
            )
            if not any(line.is_fully_specified for line in lines):
                raise EntityValidationError(
                    "at least one material with quantity and rate is required",
                    field="materials",
                )
        else:
            assert current is not None  # noqa: S101
            lines = current.material_lines

        if touches_surcharges:
            raw_surcharges = patch["surcharges"]
            if not isinstance(raw_surcharges, Mapping):
                raise EntityValidationError("surcharges must be an object", field="surcharges")
            base = _surcharges_to_wire(current.surcharges) if current is not None else {}
            surcharges = _parse(Surcharges, {**base, **camel_keys(raw_surcharges)}, "surcharges")
        else:
            assert current is not None  # noqa: S101
            surcharges = current.surcharges

        patch["materials"] = [_material_to_wire(line) for line in lines]
        patch["surcharges"] = _surcharges_to_wire(surcharges)
        patch.update(_cost_fields(compute_cost(lines, surcharges, tax_rate=self.tax_rate)))
        return patch
