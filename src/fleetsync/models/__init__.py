"""Pydantic models for fleet records and derived statistics."""

from fleetsync.models._base import FleetBaseModel, FleetEnum
from fleetsync.models.stats import DashboardStats, FleetStats, TripStats
from fleetsync.models.trip import Customer, MaterialLine, MaterialUnit, Surcharges, Trip, TripStatus
from fleetsync.models.vehicle import Vehicle, VehicleStatus, VehicleType

__all__ = [
    "Customer",
    "DashboardStats",
    "FleetBaseModel",
    "FleetEnum",
    "FleetStats",
    "MaterialLine",
    "MaterialUnit",
    "Surcharges",
    "Trip",
    "TripStats",
    "TripStatus",
    "Vehicle",
    "VehicleStatus",
    "VehicleType",
]
