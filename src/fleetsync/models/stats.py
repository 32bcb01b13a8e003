"""Fleet and trip statistics.

Pure projections of a reconciled collection; recomputed on every change and
never patched incrementally.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class FleetStats(BaseModel):
    """Vehicle counts by status and type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = 0
    available: int = 0
    active: int = 0
    maintenance: int = 0
    inactive: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class TripStats(BaseModel):
    """Trip counts, distance/cost sums and derived KPIs."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = 0
    planned: int = 0
    in_progress: int = 0
    completed: int = 0
    active: int = 0
    """Trips whose status is in the active set (planned + in-progress by default)."""
    total_distance: Decimal = Decimal("0")
    active_distance: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    """Sum of every trip's cost breakdown total."""
    total_revenue: Decimal = Decimal("0")
    """Revenue as the dashboard reports it: the billed trip totals."""
    average_trip_value: Decimal = Decimal("0")
    completion_rate: float = 0.0


class DashboardStats(BaseModel):
    """Latest fleet and trip statistics exposed to the presentation layer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fleet: FleetStats = Field(default_factory=FleetStats)
    trips: TripStats = Field(default_factory=TripStats)
