"""
Reference Resolver

Replaces the lookup ids stored on a vehicle (make, model, vehicle type,
status, drivetrain, fuel type, transmission type) with small projections
of the referenced documents and derives the read-time figures.

Two profiles:
- FULL: every projected field; used for single-record fetches
- LIGHT: name and slug only; used for the storefront and list pages
"""
import enum
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from beanie import PydanticObjectId

from royaldrive.models.lookups import (
    DriveType,
    FuelType,
    LookupDocument,
    Make,
    Model,
    Status,
    Transmission,
    VehicleType,
)
from royaldrive.models.vehicle import Vehicle
from royaldrive.repositories.lookup_repository import LookupRepository
from royaldrive.schemas.common import CamelSchema
from royaldrive.schemas.vehicle import (
    AvailabilityView,
    EngineView,
    InternalView,
    MarketingView,
    MediaSchema,
    OdometerSchema,
    PricingSchema,
    SpecificationsSchema,
    TransmissionView,
    VehicleView,
)
from royaldrive.services.calculation_service import calculation_service

logger = logging.getLogger(__name__)


class ResolveProfile(str, enum.Enum):
    FULL = "full"
    LIGHT = "light"


# reference name -> (lookup model, accessor on the vehicle)
REFERENCES: Tuple[Tuple[str, Type[LookupDocument], Callable[[Vehicle], Any]], ...] = (
    ("make", Make, lambda v: v.make),
    ("model", Model, lambda v: v.model),
    ("vehicle_type", VehicleType, lambda v: v.vehicle_type),
    ("status", Status, lambda v: v.status),
    ("drivetrain", DriveType, lambda v: v.drivetrain),
    ("fuel_type", FuelType, lambda v: v.engine.fuel_type),
    ("transmission", Transmission, lambda v: v.transmission.type),
)

# Extra fields projected per lookup type in the full profile
FULL_PROFILE_FIELDS = {
    Make: ("logo",),
    VehicleType: ("icon",),
    Status: ("code", "color", "icon", "is_default", "active"),
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def project(doc: LookupDocument, profile: ResolveProfile) -> Dict[str, Any]:
    """Minimal projection of one lookup document."""
    ref = {"id": str(doc.id), "name": doc.name, "slug": doc.slug}
    if profile is ResolveProfile.FULL:
        for field in FULL_PROFILE_FIELDS.get(type(doc), ()):
            ref[_camel(field)] = getattr(doc, field)
    return ref


def unresolved(ref_id: Any) -> Dict[str, Any]:
    """Marker for a reference whose document no longer exists."""
    return {
        "id": str(ref_id) if ref_id is not None else None,
        "name": None,
        "slug": None,
        "unresolved": True,
    }


def days_in_inventory(acquired: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days (rounded up) since acquisition; 0 for future or missing dates."""
    if acquired is None:
        return 0
    now = now or datetime.utcnow()
    if acquired.tzinfo is not None:
        acquired = acquired.replace(tzinfo=None)
    seconds = (now - acquired).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 86400)


def _copy(model_cls: Type[CamelSchema], source) -> CamelSchema:
    return model_cls.model_validate(source.model_dump())


def compose_view(
    vehicle: Vehicle,
    refs: Dict[str, Dict[str, Any]],
    now: Optional[datetime] = None,
) -> VehicleView:
    """
    Build the resolved view of one vehicle, with profit figures and days in
    inventory recomputed on every call.
    """
    internal = vehicle.internal
    profit = calculation_service.calculate_vehicle_profit(
        list_price=vehicle.pricing.list_price,
        actual_sale_price=internal.actual_sale_price,
        acquisition_cost=internal.acquisition_cost,
    )

    return VehicleView(
        id=str(vehicle.id),
        vin=vehicle.vin,
        make=refs["make"],
        model=refs["model"],
        year=vehicle.year,
        trim=vehicle.trim,
        vehicle_type=refs["vehicle_type"],
        engine=EngineView(
            size=vehicle.engine.size,
            cylinders=vehicle.engine.cylinders,
            fuel_type=refs["fuel_type"],
            horsepower=vehicle.engine.horsepower,
            torque=vehicle.engine.torque,
        ),
        transmission=TransmissionView(
            type=refs["transmission"],
            speeds=vehicle.transmission.speeds,
        ),
        drivetrain=refs["drivetrain"],
        odometer=_copy(OdometerSchema, vehicle.odometer),
        condition=vehicle.condition,
        accident_history=vehicle.accident_history,
        number_of_previous_owners=vehicle.number_of_previous_owners,
        pricing=_copy(PricingSchema, vehicle.pricing),
        specifications=_copy(SpecificationsSchema, vehicle.specifications),
        status=refs["status"],
        availability=_copy(AvailabilityView, vehicle.availability),
        media=_copy(MediaSchema, vehicle.media),
        marketing=_copy(MarketingView, vehicle.marketing),
        internal=InternalView(
            stock_number=internal.stock_number,
            acquisition_date=internal.acquisition_date,
            acquisition_cost=internal.acquisition_cost,
            target_profit=internal.target_profit,
            actual_sale_price=internal.actual_sale_price,
            sold_date=internal.sold_date,
            sale_transaction=str(internal.sale_transaction) if internal.sale_transaction else None,
            assigned_salesperson=internal.assigned_salesperson,
            notes=internal.notes,
            days_in_inventory=days_in_inventory(internal.acquisition_date, now),
            profit_loss=profit.profit_loss,
            profit_margin=profit.profit_margin,
        ),
        created_at=vehicle.created_at,
        updated_at=vehicle.updated_at,
    )


class ReferenceResolver:
    """Batch resolver: one query per lookup collection, however many vehicles."""

    def __init__(self, lookups: Optional[LookupRepository] = None):
        self.lookups = lookups or LookupRepository()

    async def resolve_many(
        self,
        vehicles: Sequence[Vehicle],
        profile: ResolveProfile = ResolveProfile.LIGHT,
    ) -> List[VehicleView]:
        if not vehicles:
            return []

        found: Dict[str, Dict[PydanticObjectId, LookupDocument]] = {}
        for name, model, accessor in REFERENCES:
            found[name] = await self.lookups.get_many(model, [accessor(v) for v in vehicles])

        now = datetime.utcnow()
        views = []
        for vehicle in vehicles:
            refs = {}
            for name, model, accessor in REFERENCES:
                ref_id = accessor(vehicle)
                doc = found[name].get(ref_id)
                if doc is None:
                    logger.warning(
                        f"Vehicle {vehicle.id} references missing {model.__name__} {ref_id}"
                    )
                    refs[name] = unresolved(ref_id)
                else:
                    refs[name] = project(doc, profile)
            views.append(compose_view(vehicle, refs, now))
        return views

    async def resolve(
        self,
        vehicle: Vehicle,
        profile: ResolveProfile = ResolveProfile.FULL,
    ) -> VehicleView:
        views = await self.resolve_many([vehicle], profile)
        return views[0]
