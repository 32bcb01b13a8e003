"""High-level async client for the fleet realtime database."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

import aiohttp

from fleetsync import query
from fleetsync._transport import RestTransport
from fleetsync.aggregate import aggregate_dashboard
from fleetsync.config import FleetConfig
from fleetsync.exceptions import EntityValidationError, FleetError
from fleetsync.models.stats import DashboardStats
from fleetsync.models.trip import Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleStatus, VehicleType
from fleetsync.remote import RealtimeDatabase, RemoteStore
from fleetsync.state.events import WriteResult
from fleetsync.sync import CollectionSync, SubscriptionHandle
from fleetsync.validation import TripAdapter, VehicleAdapter

_logger = logging.getLogger(__name__)

_VEHICLE_KINDS = frozenset({"vehicle", "vehicles"})
_TRIP_KINDS = frozenset({"trip", "trips"})


class FleetClient:
    """Async client keeping live, reconciled vehicle and trip collections.

    Usage::

        async with FleetClient(config) as client:
            await client.start()
            stats = client.get_stats()
    """

    def __init__(
        self,
        config: FleetConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        remote: RemoteStore | None = None,
        on_vehicles: Callable[[tuple[Vehicle, ...]], None] | None = None,
        on_trips: Callable[[tuple[Trip, ...]], None] | None = None,
        on_stats: Callable[[DashboardStats], None] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._remote = remote
        self._on_vehicles = on_vehicles
        self._on_trips = on_trips
        self._on_stats = on_stats
        self._vehicles: CollectionSync[Vehicle] | None = None
        self._trips: CollectionSync[Trip] | None = None
        self._handles: list[SubscriptionHandle] = []
        self._stats: DashboardStats | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetClient:
        if self._remote is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._remote = RealtimeDatabase(RestTransport(self._config, self._http_session))
        self._vehicles = CollectionSync(
            self._remote,
            VehicleAdapter(),
            path=self._config.vehicles_path,
            reconnect_delay=self._config.stream_reconnect_delay,
        )
        self._trips = CollectionSync(
            self._remote,
            TripAdapter(tax_rate=self._config.tax_rate),
            path=self._config.trips_path,
            reconnect_delay=self._config.stream_reconnect_delay,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _require_vehicles(self) -> CollectionSync[Vehicle]:
        if self._vehicles is None:
            raise FleetError("Client not initialized; use 'async with FleetClient(...)'")
        return self._vehicles

    def _require_trips(self) -> CollectionSync[Trip]:
        if self._trips is None:
            raise FleetError("Client not initialized; use 'async with FleetClient(...)'")
        return self._trips

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to both collections. Calling it twice is a no-op."""
        if self._handles:
            return
        self._handles = [
            self._require_vehicles().subscribe(self._handle_vehicles),
            self._require_trips().subscribe(self._handle_trips),
        ]

    async def stop(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.close()
        for handle in handles:
            await handle.wait_closed()

    def _handle_vehicles(self, vehicles: tuple[Vehicle, ...]) -> None:
        self._refresh_stats()
        if self._on_vehicles is not None:
            self._on_vehicles(vehicles)

    def _handle_trips(self, trips: tuple[Trip, ...]) -> None:
        self._refresh_stats()
        if self._on_trips is not None:
            self._on_trips(trips)

    def _refresh_stats(self) -> None:
        self._stats = aggregate_dashboard(self.vehicles, self.trips, tax_rate=self._config.tax_rate)
        if self._on_stats is not None:
            try:
                self._on_stats(self._stats)
            except Exception:
                _logger.debug("on_stats callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def vehicles_sync(self) -> CollectionSync[Vehicle]:
        return self._require_vehicles()

    @property
    def trips_sync(self) -> CollectionSync[Trip]:
        return self._require_trips()

    @property
    def vehicles(self) -> tuple[Vehicle, ...]:
        return self._require_vehicles().current

    @property
    def trips(self) -> tuple[Trip, ...]:
        return self._require_trips().current

    def get_stats(self) -> DashboardStats:
        """Dashboard statistics for the current collections."""
        if self._stats is None:
            return aggregate_dashboard(self.vehicles, self.trips, tax_rate=self._config.tax_rate)
        return self._stats

    def vehicles_by_type(self, vehicle_type: VehicleType | str) -> list[Vehicle]:
        return query.vehicles_by_type(self.vehicles, vehicle_type)

    def filter_trips(
        self,
        *,
        search: str | None = None,
        status: TripStatus | str | None = None,
        date_from: date | datetime | str | None = None,
        date_to: date | datetime | str | None = None,
    ) -> list[Trip]:
        return query.filter_trips(
            self.trips,
            search=search,
            status=status,
            date_from=date_from,
            date_to=date_to,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _sync_for(self, kind: str) -> CollectionSync[Any]:
        normalized = kind.strip().lower()
        if normalized in _VEHICLE_KINDS:
            return self._require_vehicles()
        if normalized in _TRIP_KINDS:
            return self._require_trips()
        raise FleetError(f"Unknown entity kind {kind!r}")

    async def create_entity(self, kind: str, data: Mapping[str, Any]) -> WriteResult:
        return await self._sync_for(kind).create(data)

    async def update_entity(self, kind: str, key: str, fields: Mapping[str, Any]) -> WriteResult:
        return await self._sync_for(kind).update(key, fields)

    async def delete_entity(self, kind: str, key: str) -> WriteResult:
        return await self._sync_for(kind).delete(key)

    async def create_trip(self, data: Mapping[str, Any], *, vehicle: Vehicle | str | None = None) -> WriteResult:
        """Create a trip, optionally assigned to *vehicle*.

        The vehicle's number, driver name and driver contact are copied into
        the trip. Once the trip is stored, an ``available`` vehicle is
        marked ``active``; a failure there is logged and does not change
        the returned result.
        """
        assigned: Vehicle | None = None
        if isinstance(vehicle, str):
            assigned = self._require_vehicles().find(vehicle)
            if assigned is None:
                return WriteResult.from_validation(
                    EntityValidationError(f"vehicle {vehicle!r} is not in the fleet", field="vehicleNumber")
                )
        else:
            assigned = vehicle

        record = dict(data)
        if assigned is not None:
            record["vehicleNumber"] = assigned.vehicle_number
            record["driverName"] = assigned.driver_name
            record["driverContact"] = assigned.driver_contact

        result = await self._require_trips().create(record)
        if result.success and assigned is not None and assigned.status == VehicleStatus.AVAILABLE:
            activated = await self._require_vehicles().update(
                assigned.storage_key or assigned.natural_key,
                {"status": VehicleStatus.ACTIVE},
            )
            if not activated.success:
                _logger.warning("Could not mark vehicle %s active: %s", assigned.vehicle_number, activated.error)
        return result
