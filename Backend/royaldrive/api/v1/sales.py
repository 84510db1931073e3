"""
Sales API Routes

Endpoints for sales transactions:
- GET / - List sales
- GET /summary - Totals grouped by status
- GET /drift - Completed sales whose vehicle is not marked sold
- POST /reconcile - Retry the vehicle update for drifted sales
- GET /{transaction_id} - Get sale
- POST / - Record a sale (pending)
- PUT /{transaction_id} - Update sale
- POST /{transaction_id}/complete - Complete sale
- POST /{transaction_id}/cancel - Cancel sale
- DELETE /{transaction_id} - Delete pending sale

All routes require the vehicles:view:internal permission.
"""
from datetime import datetime
from typing import List, Optional

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query, status

from royaldrive.core.dependencies import require_internal_access
from royaldrive.models.sales_transaction import SaleStatus
from royaldrive.schemas.sales_transaction import (
    ReconcileResultSchema,
    SalesListFilters,
    SalesSummaryRowSchema,
    SalesTransactionCreateSchema,
    SalesTransactionListResponseSchema,
    SalesTransactionResponseSchema,
    SalesTransactionUpdateSchema,
)
from royaldrive.services.sales_transaction_service import (
    SalesTransactionService,
    get_sales_transaction_service,
)

router = APIRouter(dependencies=[Depends(require_internal_access)])


@router.get(
    "",
    response_model=SalesTransactionListResponseSchema,
    summary="List sales"
)
async def list_sales(
    page: int = Query(1),
    limit: Optional[int] = Query(None, description="Page size (default 25, max 100)"),
    sale_status: Optional[SaleStatus] = Query(None, alias="status"),
    salesperson: Optional[PydanticObjectId] = Query(None),
    vehicle: Optional[PydanticObjectId] = Query(None),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    search: Optional[str] = Query(None),
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    filters = SalesListFilters(
        status=sale_status,
        salesperson=salesperson,
        vehicle=vehicle,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    items, pagination = await service.list_transactions(filters, page=page, limit=limit)
    return SalesTransactionListResponseSchema(
        items=[SalesTransactionResponseSchema.from_document(item) for item in items],
        pagination=pagination,
    )


@router.get(
    "/summary",
    response_model=List[SalesSummaryRowSchema],
    summary="Sales summary",
    description="Count, revenue, gross and margin per status."
)
async def sales_summary(
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    salesperson: Optional[PydanticObjectId] = Query(None),
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    return await service.summarize_sales(date_from, date_to, salesperson)


@router.get(
    "/drift",
    response_model=List[SalesTransactionResponseSchema],
    summary="Unsynced completed sales"
)
async def sales_drift(
    limit: int = Query(100, ge=1, le=500),
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    items = await service.list_sync_drift(limit)
    return [SalesTransactionResponseSchema.from_document(item) for item in items]


@router.post(
    "/reconcile",
    response_model=ReconcileResultSchema,
    summary="Reconcile vehicle status for completed sales"
)
async def reconcile_sales(
    limit: int = Query(100, ge=1, le=500),
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    return await service.reconcile_vehicle_sync(limit)


@router.get(
    "/{transaction_id}",
    response_model=SalesTransactionResponseSchema,
    summary="Get sale"
)
async def get_sale(
    transaction_id: str,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    transaction = await service.get_transaction(transaction_id)
    return SalesTransactionResponseSchema.from_document(transaction)


@router.post(
    "",
    response_model=SalesTransactionResponseSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Record sale"
)
async def create_sale(
    sale_data: SalesTransactionCreateSchema,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    transaction = await service.create_transaction(sale_data)
    return SalesTransactionResponseSchema.from_document(transaction)


@router.put(
    "/{transaction_id}",
    response_model=SalesTransactionResponseSchema,
    summary="Update sale"
)
async def update_sale(
    transaction_id: str,
    sale_data: SalesTransactionUpdateSchema,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    transaction = await service.update_transaction(transaction_id, sale_data)
    return SalesTransactionResponseSchema.from_document(transaction)


@router.post(
    "/{transaction_id}/complete",
    response_model=SalesTransactionResponseSchema,
    summary="Complete sale",
    description="Idempotent. Also marks the vehicle sold."
)
async def complete_sale(
    transaction_id: str,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    transaction = await service.complete_transaction(transaction_id)
    return SalesTransactionResponseSchema.from_document(transaction)


@router.post(
    "/{transaction_id}/cancel",
    response_model=SalesTransactionResponseSchema,
    summary="Cancel sale"
)
async def cancel_sale(
    transaction_id: str,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    transaction = await service.cancel_transaction(transaction_id)
    return SalesTransactionResponseSchema.from_document(transaction)


@router.delete(
    "/{transaction_id}",
    summary="Delete pending sale"
)
async def delete_sale(
    transaction_id: str,
    service: SalesTransactionService = Depends(get_sales_transaction_service),
):
    await service.delete_transaction(transaction_id)
    return {"message": "Sales transaction deleted", "id": transaction_id}
