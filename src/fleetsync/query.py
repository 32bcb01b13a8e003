"""Read-side helpers over reconciled collections."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from fleetsync.ingestion.normalize import parse_timestamp
from fleetsync.models.trip import Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleType


def vehicles_by_type(vehicles: Iterable[Vehicle], vehicle_type: VehicleType | str) -> list[Vehicle]:
    wanted = VehicleType(vehicle_type)
    return [vehicle for vehicle in vehicles if vehicle.type == wanted]


def _as_datetime(value: date | datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return parse_timestamp(value)
    if isinstance(value, date):
        return parse_timestamp(value.isoformat())
    return parse_timestamp(value)


def _matches_search(trip: Trip, needle: str) -> bool:
    haystack: tuple[Any, ...] = (
        trip.trip_id,
        trip.order_id,
        trip.vehicle_number,
        trip.driver_name,
        trip.from_location,
        trip.to_location,
        trip.customer.name,
    )
    return any(needle in str(field).casefold() for field in haystack if field)


def filter_trips(
    trips: Iterable[Trip],
    *,
    search: str | None = None,
    status: TripStatus | str | None = None,
    date_from: date | datetime | str | None = None,
    date_to: date | datetime | str | None = None,
) -> list[Trip]:
    """Filter trips the way the trip history view does.

    ``search`` is a case-insensitive substring match over ids, vehicle,
    driver, locations and customer name. ``date_from``/``date_to`` are
    inclusive bounds on ``start_date``; trips without a start date never
    match a date bound.
    """
    needle = search.strip().casefold() if search else ""
    wanted_status = TripStatus(status) if status else None
    lower = _as_datetime(date_from)
    upper = _as_datetime(date_to)

    result: list[Trip] = []
    for trip in trips:
        if needle and not _matches_search(trip, needle):
            continue
        if wanted_status is not None and trip.status != wanted_status:
            continue
        if lower is not None and (trip.start_date is None or trip.start_date < lower):
            continue
        if upper is not None and (trip.start_date is None or trip.start_date > upper):
            continue
        result.append(trip)
    return result
