from beanie import PydanticObjectId
from pydantic import Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from royaldrive.models.vehicle import VehicleCondition
from royaldrive.schemas.common import CamelSchema, PaginationSchema

VIN_ALPHABET = set("ABCDEFGHJKLMNPRSTUVWXYZ0123456789")  # no I, O, Q


# ============================================================================
# Nested blocks (shared by create and update)
# ============================================================================

class EngineSchema(CamelSchema):
    size: float = Field(..., ge=0.5, description="Displacement in litres")
    cylinders: int = Field(..., ge=1)
    fuel_type: PydanticObjectId = Field(..., description="FuelType id")
    horsepower: Optional[int] = None
    torque: Optional[int] = None


class TransmissionSchema(CamelSchema):
    type: PydanticObjectId = Field(..., description="Transmission id")
    speeds: Optional[int] = None


class OdometerSchema(CamelSchema):
    value: int = Field(..., ge=0)
    unit: Literal["km", "miles"] = "km"
    is_accurate: bool = True


class TaxesSchema(CamelSchema):
    hst: float = 13
    licensing: float = 0
    other: Optional[float] = None


class PricingSchema(CamelSchema):
    list_price: float = Field(..., ge=0)
    currency: Literal["CAD"] = "CAD"
    taxes: TaxesSchema = Field(default_factory=TaxesSchema)


class SpecificationsSchema(CamelSchema):
    exterior_color: Optional[str] = None
    interior_color: Optional[str] = None
    doors: Optional[int] = Field(None, ge=2)
    seating_capacity: Optional[int] = Field(None, ge=1)


class MediaSchema(CamelSchema):
    images: List[str] = Field(..., min_length=1, description="At least one image URL")
    videos: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)


class InternalInputSchema(CamelSchema):
    """Writable internal fields. Stock number is allocated, never supplied."""
    acquisition_date: Optional[datetime] = None
    acquisition_cost: Optional[float] = Field(None, ge=0)
    target_profit: Optional[float] = None
    assigned_salesperson: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MarketingCreateSchema(CamelSchema):
    featured: bool = False
    special_offer: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    description: str = Field(..., min_length=1, max_length=2000)


class MarketingPatchSchema(CamelSchema):
    featured: Optional[bool] = None
    special_offer: Optional[str] = None
    keywords: Optional[List[str]] = None
    description: Optional[str] = Field(None, min_length=1, max_length=2000)


def _normalize_vin(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().upper()
    if not v:
        return None
    if len(v) != 17 or not set(v) <= VIN_ALPHABET:
        raise ValueError("Invalid VIN format")
    return v


# ============================================================================
# Vehicle Request Schemas
# ============================================================================

class VehicleCreateSchema(CamelSchema):
    """
    Vehicle intake payload.
    Stock number and slug are assigned by the server.
    """
    vin: Optional[str] = Field(None, description="Optional 17 character VIN")
    make: PydanticObjectId
    model: PydanticObjectId
    year: int = Field(..., ge=1900)
    trim: Optional[str] = Field(None, max_length=50)
    vehicle_type: PydanticObjectId

    engine: EngineSchema
    transmission: TransmissionSchema
    drivetrain: PydanticObjectId
    odometer: OdometerSchema

    condition: VehicleCondition
    accident_history: bool = False
    number_of_previous_owners: int = Field(0, ge=0)

    pricing: PricingSchema
    specifications: SpecificationsSchema = Field(default_factory=SpecificationsSchema)
    status: PydanticObjectId
    media: MediaSchema
    internal: InternalInputSchema = Field(default_factory=InternalInputSchema)
    marketing: MarketingCreateSchema

    normalize_vin = field_validator("vin")(_normalize_vin)

    @field_validator("year")
    @classmethod
    def year_not_too_far_ahead(cls, v: int) -> int:
        if v > datetime.utcnow().year + 2:
            raise ValueError("Year cannot be more than 2 years in the future")
        return v


class VehicleUpdateSchema(CamelSchema):
    """
    Partial vehicle update. Only supplied keys are applied; nested blocks
    are merged key by key.
    """
    vin: Optional[str] = None
    make: Optional[PydanticObjectId] = None
    model: Optional[PydanticObjectId] = None
    year: Optional[int] = Field(None, ge=1900)
    trim: Optional[str] = Field(None, max_length=50)
    vehicle_type: Optional[PydanticObjectId] = None

    engine: Optional[EngineSchema] = None
    transmission: Optional[TransmissionSchema] = None
    drivetrain: Optional[PydanticObjectId] = None
    odometer: Optional[OdometerSchema] = None

    condition: Optional[VehicleCondition] = None
    accident_history: Optional[bool] = None
    number_of_previous_owners: Optional[int] = Field(None, ge=0)

    pricing: Optional[PricingSchema] = None
    specifications: Optional[SpecificationsSchema] = None
    status: Optional[PydanticObjectId] = None
    media: Optional[MediaSchema] = None
    internal: Optional[InternalInputSchema] = None
    marketing: Optional[MarketingPatchSchema] = None

    normalize_vin = field_validator("vin")(_normalize_vin)


class VehicleStatusUpdateSchema(CamelSchema):
    status: PydanticObjectId = Field(..., description="Status id")


class VehicleListFilters(CamelSchema):
    """Query filters for vehicle listings."""
    make: Optional[PydanticObjectId] = None
    model: Optional[PydanticObjectId] = None
    vehicle_type: Optional[PydanticObjectId] = None
    status: Optional[PydanticObjectId] = None
    fuel_type: Optional[PydanticObjectId] = None
    condition: Optional[VehicleCondition] = None
    year: Optional[int] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    featured: Optional[bool] = None
    q: Optional[str] = Field(None, description="Free text search")


# ============================================================================
# Vehicle View Schemas
# ============================================================================

Reference = Dict[str, Any]


class EngineView(CamelSchema):
    size: float
    cylinders: int
    fuel_type: Reference
    horsepower: Optional[int] = None
    torque: Optional[int] = None


class TransmissionView(CamelSchema):
    type: Reference
    speeds: Optional[int] = None


class AvailabilityView(CamelSchema):
    in_stock: bool = True
    estimated_arrival: Optional[datetime] = None
    last_updated: Optional[datetime] = None


class MarketingView(CamelSchema):
    featured: bool = False
    special_offer: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    description: str
    slug: Optional[str] = None


class InternalView(CamelSchema):
    stock_number: Optional[str] = None
    acquisition_date: Optional[datetime] = None
    acquisition_cost: Optional[float] = None
    target_profit: Optional[float] = None
    actual_sale_price: Optional[float] = None
    sold_date: Optional[datetime] = None
    sale_transaction: Optional[str] = None
    assigned_salesperson: Optional[str] = None
    notes: Optional[str] = None
    days_in_inventory: int = 0
    # Derived at read time, never persisted
    profit_loss: float = 0.0
    profit_margin: float = 0.0


class VehicleView(CamelSchema):
    """
    Fully resolved vehicle, before redaction.
    Every lookup reference is replaced by a projection dict.
    """
    id: str
    vin: Optional[str] = None
    make: Reference
    model: Reference
    year: int
    trim: Optional[str] = None
    vehicle_type: Reference
    engine: EngineView
    transmission: TransmissionView
    drivetrain: Reference
    odometer: OdometerSchema
    condition: VehicleCondition
    accident_history: bool = False
    number_of_previous_owners: int = 0
    pricing: PricingSchema
    specifications: SpecificationsSchema
    status: Reference
    availability: AvailabilityView
    media: MediaSchema
    marketing: MarketingView
    internal: InternalView
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VehicleListResponseSchema(CamelSchema):
    items: List[Dict[str, Any]]
    pagination: PaginationSchema
