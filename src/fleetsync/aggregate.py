"""Fleet and trip statistics.

Every function here is a pure fold over a reconciled collection. The
result does not depend on iteration order, and callers recompute it on
every collection change instead of patching cached values.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, localcontext

from fleetsync.config import DEFAULT_TAX_RATE
from fleetsync.ingestion.normalize import MONEY_CONTEXT, finite_or_zero, round2, to_decimal
from fleetsync.models.stats import DashboardStats, FleetStats, TripStats
from fleetsync.models.trip import Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleStatus, VehicleType

#: Trip statuses counted as "active" on the dashboard.
ACTIVE_TRIP_STATUSES: frozenset[TripStatus] = frozenset({TripStatus.PLANNED, TripStatus.IN_PROGRESS})

_ZERO = Decimal("0")


def aggregate_fleet(vehicles: Iterable[Vehicle]) -> FleetStats:
    """Count vehicles by status and type in a single pass.

    Vehicles with an unknown status are counted in ``total`` only.
    """
    total = 0
    statuses: Counter[VehicleStatus] = Counter()
    types: Counter[str] = Counter()
    for vehicle in vehicles:
        total += 1
        statuses[vehicle.status] += 1
        if vehicle.type != VehicleType.UNKNOWN:
            types[vehicle.type.value] += 1

    return FleetStats(
        total=total,
        available=statuses[VehicleStatus.AVAILABLE],
        active=statuses[VehicleStatus.ACTIVE],
        maintenance=statuses[VehicleStatus.MAINTENANCE],
        inactive=statuses[VehicleStatus.INACTIVE],
        by_type=dict(sorted(types.items())),
    )


def aggregate_trips(
    trips: Iterable[Trip],
    *,
    active_statuses: frozenset[TripStatus] = ACTIVE_TRIP_STATUSES,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> TripStats:
    """Count trips by status and sum distance and billed totals.

    Non-numeric or out-of-range distances count as 0 and emit
    :class:`~fleetsync.exceptions.NumericCoercionWarning`.
    """
    total = 0
    statuses: Counter[TripStatus] = Counter()
    active = 0
    total_distance = _ZERO
    active_distance = _ZERO
    total_cost = _ZERO

    with localcontext(MONEY_CONTEXT):
        for trip in trips:
            total += 1
            statuses[trip.status] += 1
            distance = to_decimal(trip.distance, field="distance")
            total_distance += distance
            if trip.status in active_statuses:
                active += 1
                active_distance += distance
            total_cost += trip.compute_cost(tax_rate=tax_rate).total
        total_distance = finite_or_zero(total_distance, field="total distance")
        active_distance = finite_or_zero(active_distance, field="active distance")
        total_cost = finite_or_zero(total_cost, field="total cost")
        average = round2(total_cost / total, field="average trip value") if total else _ZERO

    completed = statuses[TripStatus.COMPLETED]
    return TripStats(
        total=total,
        planned=statuses[TripStatus.PLANNED],
        in_progress=statuses[TripStatus.IN_PROGRESS],
        completed=completed,
        active=active,
        total_distance=total_distance,
        active_distance=active_distance,
        total_cost=total_cost,
        total_revenue=total_cost,
        average_trip_value=average,
        completion_rate=float((Decimal(completed) / total).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP))
        if total
        else 0.0,
    )


def aggregate_dashboard(
    vehicles: Iterable[Vehicle],
    trips: Iterable[Trip],
    *,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> DashboardStats:
    return DashboardStats(
        fleet=aggregate_fleet(vehicles),
        trips=aggregate_trips(trips, tax_rate=tax_rate),
    )
