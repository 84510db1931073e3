"""
Database models package.
Import all models here so init_beanie can register them in one place.
"""
from royaldrive.models.lookups import (
    DriveType,
    FuelType,
    Make,
    Model,
    Status,
    Transmission,
    VehicleType,
)
from royaldrive.models.vehicle import Vehicle, VehicleCondition
from royaldrive.models.sales_transaction import (
    SalesTransaction,
    SaleStatus,
    VehicleSyncState,
)

DOCUMENT_MODELS = [
    Make,
    Model,
    VehicleType,
    FuelType,
    Transmission,
    DriveType,
    Status,
    Vehicle,
    SalesTransaction,
]

__all__ = [
    "DriveType",
    "FuelType",
    "Make",
    "Model",
    "Status",
    "Transmission",
    "VehicleType",
    "Vehicle",
    "VehicleCondition",
    "SalesTransaction",
    "SaleStatus",
    "VehicleSyncState",
    "DOCUMENT_MODELS",
]
