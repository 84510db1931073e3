from beanie import PydanticObjectId
from pydantic import EmailStr, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from royaldrive.models.sales_transaction import (
    SalesTransaction,
    SaleStatus,
    VehicleSyncState,
)
from royaldrive.schemas.common import CamelSchema, PaginationSchema


# ============================================================================
# Sales Transaction Request Schemas
# ============================================================================

class SalesTransactionCreateSchema(CamelSchema):
    """
    Payload for recording a new sale. Sales always start as pending.
    """
    vehicle: PydanticObjectId = Field(..., description="Vehicle id")
    customer_name: str = Field(..., min_length=1, max_length=120)
    customer_email: Optional[EmailStr] = None
    sale_price: float = Field(..., ge=0)
    currency: Optional[Literal["CAD", "USD"]] = Field(None, description="DEFAULT_CURRENCY when omitted")
    cost_of_goods: Optional[float] = Field(None, ge=0)
    discount: float = Field(0.0, ge=0, description="Absolute discount amount")
    tax_rate: Optional[float] = Field(None, ge=0, le=1, description="Tax rate (0.13 = 13%)")
    salesperson: Optional[PydanticObjectId] = None
    payment_method: Optional[Literal["cash", "finance", "lease"]] = None
    external_deal_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    meta: Optional[Dict[str, Any]] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "vehicle": "66f1c2a9e4b0a1b2c3d4e5f6",
                "customerName": "Jane Doe",
                "customerEmail": "jane.doe@example.com",
                "salePrice": 20000,
                "costOfGoods": 16500,
                "discount": 0,
                "taxRate": 0.13,
                "paymentMethod": "finance"
            }
        }
    }


class SalesTransactionUpdateSchema(CamelSchema):
    """Partial update. Changing status here is only allowed while pending."""
    customer_name: Optional[str] = Field(None, min_length=1, max_length=120)
    customer_email: Optional[EmailStr] = None
    sale_price: Optional[float] = Field(None, ge=0)
    currency: Optional[Literal["CAD", "USD"]] = None
    cost_of_goods: Optional[float] = Field(None, ge=0)
    discount: Optional[float] = Field(None, ge=0)
    tax_rate: Optional[float] = Field(None, ge=0, le=1)
    status: Optional[SaleStatus] = None
    salesperson: Optional[PydanticObjectId] = None
    payment_method: Optional[Literal["cash", "finance", "lease"]] = None
    external_deal_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    meta: Optional[Dict[str, Any]] = None


class SalesListFilters(CamelSchema):
    status: Optional[SaleStatus] = None
    salesperson: Optional[PydanticObjectId] = None
    vehicle: Optional[PydanticObjectId] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None


# ============================================================================
# Sales Transaction Response Schemas
# ============================================================================

class SalesTransactionResponseSchema(CamelSchema):
    id: str
    vehicle: str
    customer_name: str
    customer_email: Optional[str] = None
    sale_price: float
    currency: str
    cost_of_goods: Optional[float] = None
    discount: float = 0.0
    tax_rate: float = 0.0
    gross_price: Optional[float] = None
    tax_amount: Optional[float] = None
    total_price: Optional[float] = None
    margin: Optional[float] = None
    margin_percent: Optional[float] = None
    status: SaleStatus
    closed_at: Optional[datetime] = None
    salesperson: Optional[str] = None
    payment_method: Optional[str] = None
    external_deal_id: Optional[str] = None
    notes: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    vehicle_sync: VehicleSyncState
    vehicle_sync_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, doc: SalesTransaction) -> "SalesTransactionResponseSchema":
        return cls(
            id=str(doc.id),
            vehicle=str(doc.vehicle),
            customer_name=doc.customer_name,
            customer_email=doc.customer_email,
            sale_price=doc.sale_price,
            currency=doc.currency,
            cost_of_goods=doc.cost_of_goods,
            discount=doc.discount,
            tax_rate=doc.tax_rate,
            gross_price=doc.gross_price,
            tax_amount=doc.tax_amount,
            total_price=doc.total_price,
            margin=doc.margin,
            margin_percent=doc.margin_percent,
            status=doc.status,
            closed_at=doc.closed_at,
            salesperson=str(doc.salesperson) if doc.salesperson else None,
            payment_method=doc.payment_method,
            external_deal_id=doc.external_deal_id,
            notes=doc.notes,
            meta=doc.meta,
            vehicle_sync=doc.vehicle_sync,
            vehicle_sync_error=doc.vehicle_sync_error,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class SalesTransactionListResponseSchema(CamelSchema):
    items: List[SalesTransactionResponseSchema]
    pagination: PaginationSchema


class SalesSummaryRowSchema(CamelSchema):
    status: str
    count: int
    total_revenue: float = 0.0
    total_gross: float = 0.0
    total_margin: float = 0.0


class ReconcileResultSchema(CamelSchema):
    checked: int = 0
    synced: int = 0
    skipped: int = 0
    failed: int = 0
