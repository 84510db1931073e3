from beanie import Document, PydanticObjectId
from pydantic import Field, BeforeValidator
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional
import enum


def coerce_optional_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    try:
        # Handle Decimal128 and other types by converting to string first
        return float(str(v))
    except (ValueError, TypeError):
        return None


Money = Annotated[Optional[float], BeforeValidator(coerce_optional_float)]


class SaleStatus(str, enum.Enum):
    """Sales transaction status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VehicleSyncState(str, enum.Enum):
    """
    Outcome of marking the vehicle sold after completion.

    pending: not attempted yet, synced: vehicle carries the sold status and
    sale stamps, skipped: no "sold" status exists, failed: the vehicle write
    raised.
    """
    PENDING = "pending"
    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class SalesTransaction(Document):
    """
    Sales transaction model.
    Records the sale of exactly one vehicle.
    """
    vehicle: PydanticObjectId
    customer_name: str = Field(..., max_length=120)
    customer_email: Optional[str] = None

    sale_price: float = Field(..., ge=0)
    currency: Literal["CAD", "USD"] = "CAD"
    cost_of_goods: Money = None
    discount: float = Field(0.0, ge=0)
    tax_rate: float = Field(0.0, ge=0, le=1)

    # Derived financial fields (see calculation_service.recalculate_sale)
    gross_price: Money = None
    tax_amount: Money = 0.0
    total_price: Money = None
    margin: Money = None

    status: SaleStatus = SaleStatus.PENDING
    closed_at: Optional[datetime] = None

    salesperson: Optional[PydanticObjectId] = None
    payment_method: Optional[Literal["cash", "finance", "lease"]] = None
    external_deal_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    meta: Optional[Dict[str, Any]] = None

    vehicle_sync: VehicleSyncState = VehicleSyncState.PENDING
    vehicle_sync_error: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "sales_transactions"
        indexes = [
            IndexModel([("vehicle", ASCENDING)]),
            IndexModel([("status", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("salesperson", ASCENDING), ("status", ASCENDING)]),
            IndexModel([("closed_at", DESCENDING)]),
            IndexModel([("external_deal_id", ASCENDING)]),
        ]

    @property
    def is_pending(self):
        return self.status == SaleStatus.PENDING

    @property
    def margin_percent(self) -> Optional[float]:
        """Margin as a fraction of the sale price."""
        if self.margin is None:
            return None
        if not self.sale_price:
            return 0.0
        return round(self.margin / self.sale_price, 4)
