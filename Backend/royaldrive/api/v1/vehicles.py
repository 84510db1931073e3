"""
Vehicles API Routes

Endpoints for inventory operations:
- GET / - List vehicles (filters, sort, pagination)
- GET /featured - Featured vehicles
- GET /{vehicle_id} - Vehicle by id, VIN or stock number
- POST / - Vehicle intake
- PUT /{vehicle_id} - Partial update
- PATCH /{vehicle_id}/status - Change lifecycle status
- DELETE /{vehicle_id} - Delete vehicle

Reads are open; the internal block is only returned to privileged callers.
Writes require the vehicles:view:internal permission.
"""
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query, status

from royaldrive.core.dependencies import get_internal_access, require_internal_access
from royaldrive.models.vehicle import VehicleCondition
from royaldrive.schemas.vehicle import (
    VehicleCreateSchema,
    VehicleListFilters,
    VehicleListResponseSchema,
    VehicleStatusUpdateSchema,
    VehicleUpdateSchema,
)
from royaldrive.services.vehicle_service import VehicleService, get_vehicle_service

router = APIRouter()


@router.get(
    "",
    response_model=VehicleListResponseSchema,
    response_model_by_alias=True,
    summary="List vehicles",
    description="Paginated inventory listing. Sort with e.g. `price` or `-createdAt`."
)
async def list_vehicles(
    page: int = Query(1),
    limit: Optional[int] = Query(None, description="Page size (max 100)"),
    sort: Optional[str] = Query(None),
    make: Optional[PydanticObjectId] = Query(None),
    model: Optional[PydanticObjectId] = Query(None),
    vehicle_type: Optional[PydanticObjectId] = Query(None, alias="type"),
    vehicle_status: Optional[PydanticObjectId] = Query(None, alias="status"),
    fuel_type: Optional[PydanticObjectId] = Query(None, alias="fuelType"),
    condition: Optional[VehicleCondition] = Query(None),
    year: Optional[int] = Query(None),
    min_year: Optional[int] = Query(None, alias="minYear"),
    max_year: Optional[int] = Query(None, alias="maxYear"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    featured: Optional[bool] = Query(None),
    q: Optional[str] = Query(None, description="Free text search"),
    can_view_internal: bool = Depends(get_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    filters = VehicleListFilters(
        make=make,
        model=model,
        vehicle_type=vehicle_type,
        status=vehicle_status,
        fuel_type=fuel_type,
        condition=condition,
        year=year,
        min_year=min_year,
        max_year=max_year,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        q=q,
    )
    return await service.list_vehicle_views(
        filters,
        page=page,
        limit=limit,
        sort=sort,
        can_view_internal=can_view_internal,
    )


@router.get(
    "/featured",
    response_model=List[Dict[str, Any]],
    summary="Featured vehicles"
)
async def list_featured_vehicles(
    limit: int = Query(6, ge=1, le=24),
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.list_featured(limit)


@router.get(
    "/{vehicle_id}",
    summary="Get vehicle",
    description="Look up by id, then VIN, then stock number."
)
async def get_vehicle(
    vehicle_id: str,
    can_view_internal: bool = Depends(get_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.get_vehicle_view(vehicle_id, can_view_internal)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create vehicle",
    description="Stock number and slug are assigned by the server."
)
async def create_vehicle(
    vehicle_data: VehicleCreateSchema,
    claims: dict = Depends(require_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.create_vehicle(vehicle_data)


@router.put(
    "/{vehicle_id}",
    summary="Update vehicle"
)
async def update_vehicle(
    vehicle_id: str,
    vehicle_data: VehicleUpdateSchema,
    claims: dict = Depends(require_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.update_vehicle(vehicle_id, vehicle_data, can_view_internal=True)


@router.patch(
    "/{vehicle_id}/status",
    summary="Update vehicle status"
)
async def update_vehicle_status(
    vehicle_id: str,
    request: VehicleStatusUpdateSchema,
    claims: dict = Depends(require_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    return await service.update_vehicle_status(vehicle_id, request.status)


@router.delete(
    "/{vehicle_id}",
    summary="Delete vehicle"
)
async def delete_vehicle(
    vehicle_id: str,
    claims: dict = Depends(require_internal_access),
    service: VehicleService = Depends(get_vehicle_service),
):
    await service.delete_vehicle(vehicle_id)
    return {"message": "Vehicle deleted", "id": vehicle_id}
