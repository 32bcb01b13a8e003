from __future__ import annotations

import re
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest

from fleetsync.exceptions import EntityValidationError
from fleetsync.models.trip import Trip
from fleetsync.validation import TripAdapter, VehicleAdapter, camel_keys, generate_trip_ids


def test_camel_keys_converts_snake_case_only() -> None:
    assert camel_keys({"vehicle_number": 1, "driverName": 2, "route": 3}) == {
        "vehicleNumber": 1,
        "driverName": 2,
        "route": 3,
    }


def test_generate_trip_ids_share_suffix() -> None:
    trip_id, order_id = generate_trip_ids(datetime(2025, 1, 10, tzinfo=UTC))

    assert re.fullmatch(r"TRIP-20250110-[0-9A-F]{6}", trip_id)
    assert order_id == "ORD-" + trip_id.removeprefix("TRIP-")


class TestVehicleAdapter:
    def test_create_requires_number_driver_and_route(self) -> None:
        adapter = VehicleAdapter()

        with pytest.raises(EntityValidationError) as excinfo:
            adapter.prepare_create({"vehicleNumber": "MH12AB1234", "driverName": "Ravi"})

        assert excinfo.value.field == "route"

    def test_create_defaults_status_and_strips_store_fields(self) -> None:
        record = VehicleAdapter().prepare_create(
            {
                "vehicle_number": " MH12AB1234 ",
                "driverName": "Ravi",
                "route": "Pune-Mumbai",
                "type": "Type1",
                "firebaseKey": "-stale",
                "capacity": "",
            }
        )

        assert record == {
            "vehicleNumber": "MH12AB1234",
            "driverName": "Ravi",
            "route": "Pune-Mumbai",
            "type": "type1",
            "status": "available",
        }

    def test_create_rejects_unknown_type(self) -> None:
        with pytest.raises(EntityValidationError) as excinfo:
            VehicleAdapter().prepare_create(
                {"vehicleNumber": "MH12", "driverName": "Ravi", "route": "Pune", "type": "truck"}
            )

        assert excinfo.value.field == "type"

    def test_update_cannot_blank_vehicle_number(self) -> None:
        with pytest.raises(EntityValidationError):
            VehicleAdapter().prepare_update({"vehicleNumber": "  "}, None)

    def test_update_normalizes_status(self) -> None:
        assert VehicleAdapter().prepare_update({"status": "Maintenance"}, None) == {"status": "maintenance"}


class TestTripAdapter:
    def test_create_persists_cost_breakdown_and_ids(self, trip_payload: dict[str, Any]) -> None:
        record = TripAdapter().prepare_create(trip_payload)

        assert record["tripId"].startswith("TRIP-")
        assert record["orderId"].startswith("ORD-")
        assert record["status"] == "planned"
        assert record["customer"] == {"name": "Acme Builders", "phone": "9800000000"}
        assert record["materials"] == [
            {"material": "Sand", "quantity": 10, "unit": "Tons", "rate": 250, "amount": 2500.0}
        ]
        assert record["surcharges"] == {"transportCharges": 500, "otherCharges": 100}
        assert record["costBreakdown"]["total"] == 3658.0
        assert (record["materialsTotal"], record["subtotal"], record["gst"], record["total"]) == (
            2500.0,
            3100.0,
            558.0,
            3658.0,
        )

    def test_create_accepts_flat_customer_and_surcharges(self) -> None:
        record = TripAdapter().prepare_create(
            {
                "fromLocation": "Pune",
                "toLocation": "Nashik",
                "startDate": "2025-02-01",
                "customerName": "Acme",
                "customerPhone": "98000",
                "gstNumber": "27ABCDE1234F1Z5",
                "transportCharges": 200,
                "materials": [{"material": "Bricks", "quantity": 1000, "unit": "Pieces", "rate": 8}],
            }
        )

        assert record["customer"] == {"name": "Acme", "phone": "98000", "taxId": "27ABCDE1234F1Z5"}
        assert "customerName" not in record
        assert "transportCharges" not in record
        assert record["total"] == 9676.0

    def test_create_keeps_caller_trip_id(self, trip_payload: dict[str, Any]) -> None:
        record = TripAdapter().prepare_create({**trip_payload, "tripId": "TRIP-CUSTOM"})

        assert record["tripId"] == "TRIP-CUSTOM"

    def test_create_uses_configured_tax_rate(self, trip_payload: dict[str, Any]) -> None:
        record = TripAdapter(tax_rate=Decimal("0.05")).prepare_create(trip_payload)

        assert record["gst"] == 155.0
        assert record["total"] == 3255.0

    @pytest.mark.parametrize(
        ("override", "field"),
        [
            ({"fromLocation": ""}, "fromLocation"),
            ({"toLocation": None}, "toLocation"),
            ({"startDate": "someday"}, "startDate"),
            ({"customer": {"name": "Acme Builders"}}, "customer.phone"),
            ({"customer": {"phone": "9800000000"}}, "customer.name"),
            ({"materials": [{"material": "Sand", "quantity": 0, "rate": 250}]}, "materials"),
            ({"materials": [{"material": "", "quantity": 1, "rate": 250}]}, "materials"),
            ({"status": "lost"}, "status"),
        ],
    )
    def test_create_rejects_incomplete_trip(
        self,
        trip_payload: dict[str, Any],
        override: dict[str, Any],
        field: str,
    ) -> None:
        with pytest.raises(EntityValidationError) as excinfo:
            TripAdapter().prepare_create({**trip_payload, **override})

        assert excinfo.value.field == field

    def test_update_rejects_cost_breakdown(self) -> None:
        with pytest.raises(EntityValidationError) as excinfo:
            TripAdapter().prepare_update({"costBreakdown": {"total": 1}}, None)

        assert excinfo.value.field == "costBreakdown"

    def test_update_status_only_leaves_costing_alone(self) -> None:
        patch = TripAdapter().prepare_update({"status": "In-Progress"}, None)

        assert patch == {"status": "in-progress"}

    def test_update_materials_merges_current_surcharges(self, trip_payload: dict[str, Any]) -> None:
        current = Trip.model_validate({**trip_payload, "tripId": "TRIP-1", "firebaseKey": "-t1"})

        patch = TripAdapter().prepare_update(
            {"materials": [{"material": "Sand", "quantity": 20, "rate": 250}]},
            current,
        )

        assert patch["surcharges"] == {"transportCharges": 500, "otherCharges": 100}
        assert patch["materialsTotal"] == 5000.0
        assert patch["subtotal"] == 5600.0
        assert patch["total"] == 6608.0

    def test_update_surcharge_merges_current_materials(self, trip_payload: dict[str, Any]) -> None:
        current = Trip.model_validate(trip_payload)

        patch = TripAdapter().prepare_update({"otherCharges": 0}, current)

        assert patch["surcharges"] == {"transportCharges": 500, "otherCharges": 0}
        assert patch["materials"][0]["amount"] == 2500.0
        assert patch["total"] == 3540.0

    def test_update_without_current_needs_both_inputs(self) -> None:
        adapter = TripAdapter()

        with pytest.raises(EntityValidationError):
            adapter.prepare_update({"materials": [{"material": "Sand", "quantity": 1, "rate": 1}]}, None)

        patch = adapter.prepare_update(
            {
                "materials": [{"material": "Sand", "quantity": 1, "rate": 100}],
                "surcharges": {"transportCharges": 0},
            },
            None,
        )
        assert patch["total"] == 118.0

    def test_update_customer_keeps_required_fields(self, trip_payload: dict[str, Any]) -> None:
        current = Trip.model_validate(trip_payload)
        adapter = TripAdapter()

        patch = adapter.prepare_update({"customer": {"address": "Baner"}}, current)
        assert patch["customer"] == {"name": "Acme Builders", "phone": "9800000000", "address": "Baner"}

        with pytest.raises(EntityValidationError):
            adapter.prepare_update({"customer": {"phone": ""}}, current)
