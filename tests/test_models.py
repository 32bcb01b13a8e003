from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from fleetsync.models.trip import MaterialLine, MaterialUnit, Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleStatus, VehicleType


def test_vehicle_parses_wire_record() -> None:
    vehicle = Vehicle.model_validate(
        {
            "vehicleNumber": " MH12AB1234 ",
            "firebaseKey": "-k1",
            "type": "TYPE2",
            "status": "Available",
            "capacity": 20,
            "driverName": "Ravi",
            "driverContact": "--",
            "createdAt": 1735689600000,
            "updatedAt": "2025-01-02T00:00:00.000Z",
            "somethingNew": True,
        }
    )

    assert vehicle.vehicle_number == "MH12AB1234"
    assert vehicle.storage_key == "-k1"
    assert vehicle.natural_key == "MH12AB1234"
    assert vehicle.type == VehicleType.TYPE2
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.capacity == "20"
    assert vehicle.driver_contact == ""
    assert vehicle.created_at == datetime(2025, 1, 1, tzinfo=UTC)
    assert vehicle.updated_at == datetime(2025, 1, 2, tzinfo=UTC)
    assert vehicle.raw["somethingNew"] is True


def test_unknown_enum_values_do_not_raise() -> None:
    vehicle = Vehicle.model_validate({"firebaseKey": "-k1", "status": "retired", "type": 7})

    assert vehicle.status == VehicleStatus.UNKNOWN
    assert vehicle.type == VehicleType.UNKNOWN
    assert vehicle.natural_key == "-k1"


def test_trip_lifts_flat_customer_and_surcharges() -> None:
    trip = Trip.model_validate(
        {
            "tripId": "TRIP-1",
            "customerName": "Acme",
            "customerPhone": "98000",
            "gstNumber": "27ABCDE1234F1Z5",
            "transportCharges": "500",
            "status": "in-progress",
        }
    )

    assert trip.customer.name == "Acme"
    assert trip.customer.tax_id == "27ABCDE1234F1Z5"
    assert trip.surcharges.transport_charges == "500"
    assert trip.status == TripStatus.IN_PROGRESS


def test_trip_materials_from_index_keyed_object() -> None:
    trip = Trip.model_validate(
        {
            "tripId": "TRIP-1",
            "materials": {
                "1": {"material": "Cement", "quantity": 5, "unit": "bags", "rate": 400},
                "0": {"material": "Sand", "quantity": 10, "rate": 250},
                "2": "junk",
            },
        }
    )

    assert [line.material for line in trip.material_lines] == ["Sand", "Cement"]
    assert trip.material_lines[1].unit == MaterialUnit.BAGS
    assert trip.material_lines[0].unit == MaterialUnit.TONS


def test_material_line_fully_specified() -> None:
    assert MaterialLine(material="Sand", quantity="10", rate=250).is_fully_specified
    assert not MaterialLine(material="Sand", quantity="abc", rate=250).is_fully_specified
    assert not MaterialLine(material="Sand", quantity=0, rate=250).is_fully_specified
    assert not MaterialLine(quantity=1, rate=1).is_fully_specified


def test_trip_natural_key_falls_back_to_storage_key() -> None:
    assert Trip.model_validate({"firebaseKey": "-t1"}).natural_key == "-t1"
    assert Trip.model_validate({"vehicleRef": "MH12"}).vehicle_number == "MH12"


def test_models_are_frozen() -> None:
    vehicle = Vehicle.model_validate({"vehicleNumber": "MH12"})

    with pytest.raises(ValidationError):
        vehicle.route = "Pune"  # type: ignore[misc]
