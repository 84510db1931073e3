import asyncio
import os
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "mongodb://localhost:27017/royaldrive_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("VEHICLE_CACHE_BACKEND", "memory")

import mongomock
import pytest

from royaldrive.adapters.memory_cache_adapter import MemoryVehicleCache
from royaldrive.core.database import init_db
from royaldrive.models.lookups import (
    DriveType,
    FuelType,
    Make,
    Model,
    Status,
    Transmission,
    VehicleType,
)
from royaldrive.schemas.vehicle import VehicleCreateSchema
from royaldrive.services.sales_transaction_service import SalesTransactionService
from royaldrive.services.stock_number_service import StockNumberService
from royaldrive.services.vehicle_service import VehicleService

from fakes import (
    MongomockLookupRepository,
    MongomockSalesTransactionRepository,
    MongomockVehicleRepository,
)

STOCK_YEAR = 2025


@pytest.fixture(scope="session", autouse=True)
def beanie_models():
    """
    Register the document models with Beanie once per run.

    The database handle never talks to a server: repositories in the tests
    are backed by mongomock collections instead.
    """
    database = MagicMock()
    database.name = "royaldrive_test"
    database.command = AsyncMock(return_value={"version": "7.0.0"})
    database.list_collection_names = AsyncMock(return_value=[])
    asyncio.run(init_db(database=database, skip_indexes=True))


@pytest.fixture
def mongo():
    return mongomock.MongoClient().royaldrive_test


@pytest.fixture
def vehicle_repository(mongo):
    return MongomockVehicleRepository(mongo)


@pytest.fixture
def lookup_repository(mongo):
    return MongomockLookupRepository(mongo)


@pytest.fixture
def sales_repository(mongo):
    return MongomockSalesTransactionRepository(mongo)


@pytest.fixture
def cache():
    return MemoryVehicleCache(default_ttl=300)


@pytest.fixture
def lookups(lookup_repository):
    """Master data every test vehicle points at (including a "Sold" status)."""
    add = lookup_repository.add
    return SimpleNamespace(
        make=add(Make(name="Toyota", slug="toyota", logo="https://cdn.example.com/toyota.svg")),
        model=add(Model(name="Camry", slug="camry")),
        vehicle_type=add(VehicleType(name="Sedan", slug="sedan")),
        fuel_type=add(FuelType(name="Gasoline", slug="gasoline")),
        transmission=add(Transmission(name="Automatic", slug="automatic")),
        drivetrain=add(DriveType(name="Front-Wheel Drive", slug="fwd")),
        available=add(Status(name="Available", slug="available", color="#28a745", is_default=True)),
        pending=add(Status(name="Pending", slug="pending", color="#ffc107")),
        sold=add(Status(name="Sold", slug="sold", color="#dc3545")),
    )


@pytest.fixture
def lookups_without_sold(lookup_repository, lookups):
    lookup_repository.db[Status.get_collection_name()].delete_one({"_id": lookups.sold.id})
    return lookups


@pytest.fixture
def vehicle_data(lookups):
    """Factory for valid intake payloads; keyword overrides use camelCase keys."""
    def build(**overrides) -> VehicleCreateSchema:
        data = {
            "make": lookups.make.id,
            "model": lookups.model.id,
            "year": 2021,
            "trim": "SE",
            "vehicleType": lookups.vehicle_type.id,
            "engine": {"size": 2.5, "cylinders": 4, "fuelType": lookups.fuel_type.id, "horsepower": 203},
            "transmission": {"type": lookups.transmission.id, "speeds": 8},
            "drivetrain": lookups.drivetrain.id,
            "odometer": {"value": 42000, "unit": "km"},
            "condition": "used",
            "pricing": {"listPrice": 25000},
            "status": lookups.available.id,
            "media": {"images": ["https://cdn.example.com/camry-1.jpg"]},
            "internal": {
                "acquisitionCost": 19000,
                "targetProfit": 4000,
                "notes": "Trade-in, rear bumper scuff",
            },
            "marketing": {"description": "One owner, clean history", "keywords": ["sedan", "camry"]},
        }
        data.update(overrides)
        return VehicleCreateSchema.model_validate(data)
    return build


@pytest.fixture
def stock_numbers(vehicle_repository):
    return StockNumberService(vehicle_repository, clock=lambda: datetime(STOCK_YEAR, 6, 1))


@pytest.fixture
def vehicle_service(vehicle_repository, lookup_repository, sales_repository, cache, stock_numbers):
    return VehicleService(
        repository=vehicle_repository,
        lookups=lookup_repository,
        sales=sales_repository,
        cache=cache,
        stock_numbers=stock_numbers,
    )


@pytest.fixture
def sales_service(sales_repository, vehicle_repository, lookup_repository, cache):
    return SalesTransactionService(
        repository=sales_repository,
        vehicles=vehicle_repository,
        lookups=lookup_repository,
        cache=cache,
    )


@pytest.fixture
async def vehicle(vehicle_service, vehicle_data):
    """One vehicle already taken into inventory (internal view)."""
    return await vehicle_service.create_vehicle(vehicle_data())
