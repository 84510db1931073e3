"""
API v1 Router

Aggregates all v1 API routes.
"""
from fastapi import APIRouter
from royaldrive.api.v1 import public, sales, vehicles

# Create main v1 router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(
    vehicles.router,
    prefix="/vehicles",
    tags=["Vehicles - Inventory"]
)

api_router.include_router(
    public.router,
    prefix="/public",
    tags=["Public - Storefront"]
)

api_router.include_router(
    sales.router,
    prefix="/sales",
    tags=["Sales Transactions"]
)
