"""fleetsync - Reconciled realtime fleet records, trip costing and statistics."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetsync")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetsync.aggregate import aggregate_dashboard, aggregate_fleet, aggregate_trips
from fleetsync.client import FleetClient
from fleetsync.config import DEFAULT_TAX_RATE, FleetConfig
from fleetsync.costing import CostBreakdown, compute_cost
from fleetsync.exceptions import (
    EntityValidationError,
    FleetConfigError,
    FleetError,
    FleetStreamError,
    FleetTransportError,
    MalformedRecordError,
    NumericCoercionWarning,
    RemoteWriteError,
)
from fleetsync.models import (
    Customer,
    DashboardStats,
    FleetStats,
    MaterialLine,
    MaterialUnit,
    Surcharges,
    Trip,
    TripStats,
    TripStatus,
    Vehicle,
    VehicleStatus,
    VehicleType,
)
from fleetsync.remote import RealtimeDatabase, RemoteStore
from fleetsync.state.events import SyncState, WriteErrorKind, WriteResult
from fleetsync.state.reconcile import ReconcileResult, reconcile
from fleetsync.sync import CollectionSync, SubscriptionHandle

__all__ = [
    "__version__",
    "CollectionSync",
    "CostBreakdown",
    "Customer",
    "DEFAULT_TAX_RATE",
    "DashboardStats",
    "EntityValidationError",
    "FleetClient",
    "FleetConfig",
    "FleetConfigError",
    "FleetError",
    "FleetStats",
    "FleetStreamError",
    "FleetTransportError",
    "MalformedRecordError",
    "MaterialLine",
    "MaterialUnit",
    "NumericCoercionWarning",
    "RealtimeDatabase",
    "ReconcileResult",
    "RemoteStore",
    "RemoteWriteError",
    "SubscriptionHandle",
    "Surcharges",
    "SyncState",
    "Trip",
    "TripStats",
    "TripStatus",
    "Vehicle",
    "VehicleStatus",
    "VehicleType",
    "WriteErrorKind",
    "WriteResult",
    "aggregate_dashboard",
    "aggregate_fleet",
    "aggregate_trips",
    "compute_cost",
    "reconcile",
]
