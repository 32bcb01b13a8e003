from __future__ import annotations

import copy
from decimal import Decimal

import pytest

from fleetsync.costing import compute_cost, line_amount
from fleetsync.exceptions import NumericCoercionWarning
from fleetsync.models.trip import MaterialLine, Surcharges, Trip


def test_compute_cost_worked_example() -> None:
    lines = [{"material": "Sand", "quantity": 10, "unit": "Tons", "rate": 250}]
    breakdown = compute_cost(lines, {"transportCharges": 500, "otherCharges": 100})

    assert breakdown.line_amounts == (Decimal("2500.00"),)
    assert breakdown.materials_total == Decimal("2500")
    assert breakdown.subtotal == Decimal("3100")
    assert breakdown.tax == Decimal("558.00")
    assert breakdown.total == Decimal("3658")


def test_compute_cost_accepts_models() -> None:
    lines = (MaterialLine(material="Cement", quantity="2.5", rate="400", unit="Bags"),)
    breakdown = compute_cost(lines, Surcharges(transport_charges=0, other_charges=50))

    assert breakdown.materials_total == Decimal("1000.00")
    assert breakdown.subtotal == Decimal("1050.00")
    assert breakdown.tax == Decimal("189.00")
    assert breakdown.total == Decimal("1239.00")


def test_non_numeric_quantity_counts_as_zero_with_warning() -> None:
    lines = [
        {"material": "Sand", "quantity": "abc", "rate": 250},
        {"material": "Gravel", "quantity": 2, "rate": 100},
    ]

    with pytest.warns(NumericCoercionWarning):
        breakdown = compute_cost(lines)

    assert breakdown.line_amounts == (Decimal("0.00"), Decimal("200.00"))
    assert breakdown.materials_total == Decimal("200.00")


def test_missing_inputs_are_zero_without_warning(recwarn: pytest.WarningsRecorder) -> None:
    breakdown = compute_cost(None, None)

    assert breakdown.total == Decimal("0")
    assert breakdown.line_amounts == ()
    assert not [w for w in recwarn if issubclass(w.category, NumericCoercionWarning)]


def test_line_amount_rounds_half_up() -> None:
    assert line_amount({"quantity": 0.125, "rate": 1}) == Decimal("0.13")
    assert line_amount({"quantity": 1.005, "rate": 1}) == Decimal("1.01")


def test_tax_rate_is_configurable() -> None:
    breakdown = compute_cost([{"quantity": 10, "rate": 100}], tax_rate=Decimal("0.05"))

    assert breakdown.tax_rate == Decimal("0.05")
    assert breakdown.tax == Decimal("50.00")
    assert breakdown.total == Decimal("1050.00")


def test_compute_cost_does_not_mutate_inputs() -> None:
    lines = [{"material": "Sand", "quantity": "10", "rate": "250"}]
    surcharges = {"transportCharges": "500"}
    before = (copy.deepcopy(lines), copy.deepcopy(surcharges))

    compute_cost(lines, surcharges)

    assert (lines, surcharges) == before


def test_trip_cost_breakdown_is_derived_not_read() -> None:
    trip = Trip.model_validate(
        {
            "tripId": "TRIP-1",
            "materials": [{"material": "Sand", "quantity": 10, "rate": 250}],
            "transportCharges": 500,
            "otherCharges": 100,
            # A stale stored breakdown is ignored.
            "costBreakdown": {"total": 1},
            "total": 1,
        }
    )

    assert trip.cost_breakdown.total == Decimal("3658")


def test_to_wire_uses_camel_case_floats() -> None:
    wire = compute_cost([{"quantity": 10, "rate": 250}], {"transportCharges": 500, "otherCharges": 100}).to_wire()

    assert wire == {
        "materialsTotal": 2500.0,
        "transportCharges": 500.0,
        "otherCharges": 100.0,
        "subtotal": 3100.0,
        "taxRate": 0.18,
        "tax": 558.0,
        "total": 3658.0,
    }


def test_large_amounts_keep_their_cents(recwarn: pytest.WarningsRecorder) -> None:
    breakdown = compute_cost([{"quantity": 1e30, "rate": 1}], {"transportCharges": "0.01"})

    assert breakdown.line_amounts == (Decimal("1E+30"),)
    assert breakdown.subtotal == Decimal("1000000000000000000000000000000.01")
    assert breakdown.tax == Decimal("180000000000000000000000000000.00")
    assert breakdown.total == Decimal("1180000000000000000000000000000.01")
    assert not [w for w in recwarn if issubclass(w.category, NumericCoercionWarning)]


@pytest.mark.parametrize(
    "line",
    [
        {"quantity": "1e5000", "rate": 1},
        {"quantity": "9e999999", "rate": "9e999999"},
    ],
)
def test_out_of_range_line_counts_as_zero_with_warning(line: dict[str, object]) -> None:
    with pytest.warns(NumericCoercionWarning):
        breakdown = compute_cost([line, {"quantity": 10, "rate": 250}], {"transportCharges": 500, "otherCharges": 100})

    assert breakdown.line_amounts == (Decimal("0"), Decimal("2500"))
    assert breakdown.total == Decimal("3658")
