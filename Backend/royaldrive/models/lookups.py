"""
Lookup (master data) documents.

These collections are owned by the master-data screens; the vehicle
engine only reads them by id to inline names and slugs into views.
"""
from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from typing import Optional


class LookupDocument(Document):
    """Fields shared by every lookup entity."""
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Make(LookupDocument):
    logo: Optional[str] = None

    class Settings:
        name = "makes"


class Model(LookupDocument):
    make: Optional[PydanticObjectId] = None
    vehicle_type: Optional[PydanticObjectId] = None

    class Settings:
        name = "models"


class VehicleType(LookupDocument):
    icon: Optional[str] = None

    class Settings:
        name = "vehicletypes"


class FuelType(LookupDocument):
    class Settings:
        name = "fueltypes"


class Transmission(LookupDocument):
    class Settings:
        name = "transmissions"


class DriveType(LookupDocument):
    class Settings:
        name = "drivetypes"


class Status(LookupDocument):
    """
    Vehicle lifecycle status (Available, Sold, Pending, Reserved, On Hold).
    """
    code: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_default: bool = False

    class Settings:
        name = "statuses"
