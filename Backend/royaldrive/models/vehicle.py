from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime
from typing import List, Literal, Optional
import enum


class VehicleCondition(str, enum.Enum):
    """Vehicle condition enumeration."""
    NEW = "new"
    USED = "used"
    CERTIFIED_PRE_OWNED = "certified-pre-owned"


class EngineSpec(BaseModel):
    size: float = Field(..., ge=0.5, description="Displacement in litres")
    cylinders: int = Field(..., ge=1)
    fuel_type: PydanticObjectId
    horsepower: Optional[int] = None
    torque: Optional[int] = None


class TransmissionSpec(BaseModel):
    type: PydanticObjectId
    speeds: Optional[int] = None


class Odometer(BaseModel):
    value: int = Field(..., ge=0)
    unit: Literal["km", "miles"] = "km"
    is_accurate: bool = True


class Taxes(BaseModel):
    hst: float = 13  # Ontario HST percentage
    licensing: float = 0
    other: Optional[float] = None


class Pricing(BaseModel):
    list_price: float = Field(..., ge=0)
    currency: Literal["CAD"] = "CAD"
    taxes: Taxes = Field(default_factory=Taxes)


class Specifications(BaseModel):
    exterior_color: Optional[str] = None
    interior_color: Optional[str] = None
    doors: Optional[int] = Field(None, ge=2)
    seating_capacity: Optional[int] = Field(None, ge=1)


class Availability(BaseModel):
    in_stock: bool = True
    estimated_arrival: Optional[datetime] = None
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class Media(BaseModel):
    images: List[str] = Field(..., min_length=1)
    videos: List[str] = []
    documents: List[str] = []


class InternalInfo(BaseModel):
    """
    Dealer-only block. Never shown on the storefront.
    """
    stock_number: Optional[str] = None
    acquisition_date: datetime = Field(default_factory=datetime.utcnow)
    acquisition_cost: Optional[float] = Field(None, ge=0)
    target_profit: Optional[float] = None
    actual_sale_price: Optional[float] = None
    sold_date: Optional[datetime] = None
    sale_transaction: Optional[PydanticObjectId] = None
    assigned_salesperson: Optional[str] = None
    notes: Optional[str] = None


class Marketing(BaseModel):
    featured: bool = False
    special_offer: Optional[str] = None
    keywords: List[str] = []
    description: str = Field(..., max_length=2000)
    slug: Optional[str] = None


class Vehicle(Document):
    """
    Vehicle model.
    Represents a unit of dealership inventory.

    Lookup references (make, model, vehicle_type, drivetrain, status,
    engine.fuel_type, transmission.type) are stored as ObjectIds and
    resolved at read time.
    """
    vin: Optional[str] = None

    make: PydanticObjectId
    model: PydanticObjectId
    year: int = Field(..., ge=1900)
    trim: Optional[str] = Field(None, max_length=50)
    vehicle_type: PydanticObjectId

    engine: EngineSpec
    transmission: TransmissionSpec
    drivetrain: PydanticObjectId
    odometer: Odometer

    condition: VehicleCondition
    accident_history: bool = False
    number_of_previous_owners: int = Field(0, ge=0)

    pricing: Pricing
    specifications: Specifications = Field(default_factory=Specifications)

    status: PydanticObjectId
    availability: Availability = Field(default_factory=Availability)

    media: Media
    internal: InternalInfo = Field(default_factory=InternalInfo)
    marketing: Marketing

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "vehicles"
        indexes = [
            # VIN is optional; uniqueness only applies where one is present
            IndexModel(
                [("vin", ASCENDING)],
                name="vin_unique",
                unique=True,
                partialFilterExpression={"vin": {"$type": "string"}},
            ),
            IndexModel(
                [("marketing.slug", ASCENDING)],
                name="marketing_slug_unique",
                unique=True,
                partialFilterExpression={"marketing.slug": {"$type": "string"}},
            ),
            IndexModel(
                [("internal.stock_number", ASCENDING)],
                name="stock_number_unique",
                unique=True,
                partialFilterExpression={"internal.stock_number": {"$type": "string"}},
            ),
            IndexModel([("make", ASCENDING), ("model", ASCENDING), ("year", DESCENDING)]),
            IndexModel([("status", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("pricing.list_price", ASCENDING)]),
            IndexModel([("marketing.featured", ASCENDING), ("created_at", DESCENDING)]),
        ]

    async def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return await super().save(*args, **kwargs)
