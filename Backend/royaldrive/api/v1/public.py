"""
Public API Routes (No Authentication Required)

Storefront endpoints. Responses never contain dealer-only data.
"""
from fastapi import APIRouter, Depends

from royaldrive.services.vehicle_service import VehicleService, get_vehicle_service

router = APIRouter()


@router.get(
    "/vehicles/{slug}",
    summary="Get vehicle by slug",
    description="Storefront vehicle page. Served from the vehicle cache when warm."
)
async def get_vehicle_by_slug(
    slug: str,
    service: VehicleService = Depends(get_vehicle_service),
):
    """
    **No authentication required** - the internal block is always removed.
    """
    return await service.get_vehicle_view_by_slug(slug)
