"""
Sales Transaction Service

Lifecycle of a sale:

    pending --complete--> completed
    pending --cancel----> cancelled

completed and cancelled are terminal. Completing a sale also marks the
vehicle sold. That second write is not transactional with the first: the
sale is saved as completed before the vehicle is touched, and the outcome
is recorded on the sale (vehicle_sync) so drift can be listed and
reconciled later.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import logging

from beanie import PydanticObjectId

from royaldrive.adapters.cache_adapter_interface import VehicleCacheInterface
from royaldrive.core.config import settings
from royaldrive.core.exceptions import InvalidTransitionError, NotFoundError
from royaldrive.models.sales_transaction import (
    SalesTransaction,
    SaleStatus,
    VehicleSyncState,
)
from royaldrive.repositories.lookup_repository import LookupRepository
from royaldrive.repositories.sales_transaction_repository import (
    SalesTransactionRepository,
    build_sales_query,
    build_summary_pipeline,
)
from royaldrive.repositories.vehicle_repository import VehicleRepository
from royaldrive.schemas.common import PaginationSchema
from royaldrive.schemas.sales_transaction import (
    ReconcileResultSchema,
    SalesListFilters,
    SalesSummaryRowSchema,
    SalesTransactionCreateSchema,
    SalesTransactionUpdateSchema,
)
from royaldrive.services.calculation_service import calculation_service
from royaldrive.services.vehicle_cache_service import invalidate_vehicle, vehicle_cache

logger = logging.getLogger(__name__)

# Fields that may not be cleared through a generic update
REQUIRED_FIELDS = {"customer_name", "sale_price", "currency", "discount", "tax_rate"}


def _money(value: Any) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class SalesTransactionService:
    """Service for sales transaction business logic (Async)"""

    def __init__(
        self,
        repository: Optional[SalesTransactionRepository] = None,
        vehicles: Optional[VehicleRepository] = None,
        lookups: Optional[LookupRepository] = None,
        cache: Optional[VehicleCacheInterface] = None,
    ):
        self.repository = repository or SalesTransactionRepository()
        self.vehicles = vehicles or VehicleRepository()
        self.lookups = lookups or LookupRepository()
        self.cache = cache if cache is not None else vehicle_cache

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_transaction(self, data: SalesTransactionCreateSchema) -> SalesTransaction:
        """
        Record a new sale in the pending state with its derived figures.
        """
        if await self.vehicles.get_by_id(data.vehicle) is None:
            raise NotFoundError("Vehicle", data.vehicle)

        fields = data.model_dump(exclude_none=True)
        if data.tax_rate is None:
            fields["tax_rate"] = settings.DEFAULT_TAX_RATE
        if data.currency is None:
            fields["currency"] = settings.DEFAULT_CURRENCY
        if data.customer_email:
            fields["customer_email"] = str(data.customer_email).lower()

        transaction = SalesTransaction(**fields, status=SaleStatus.PENDING)
        calculation_service.recalculate_sale(transaction)

        await self.repository.insert(transaction)
        logger.info(f"Created sales transaction {transaction.id} for vehicle {transaction.vehicle}")
        return transaction

    async def get_transaction(self, transaction_id: str) -> SalesTransaction:
        transaction = await self.repository.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Sales transaction", transaction_id)
        return transaction

    async def list_transactions(
        self,
        filters: Optional[SalesListFilters] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> Tuple[List[SalesTransaction], PaginationSchema]:
        """Newest first; limit defaults to 25 and is capped at 100."""
        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else settings.SALES_PAGE_LIMIT_DEFAULT
        limit = min(limit, settings.PAGE_LIMIT_MAX)

        items, total = await self.repository.find_page(
            build_sales_query(filters),
            skip=(page - 1) * limit,
            limit=limit,
        )
        return items, PaginationSchema.build(page, limit, total)

    async def update_transaction(
        self,
        transaction_id: str,
        patch: SalesTransactionUpdateSchema,
    ) -> SalesTransaction:
        """
        Apply a partial update and recompute the derived figures.

        A status change is only accepted while the sale is pending, and is
        carried out through complete/cancel so their side effects apply.
        """
        transaction = await self.get_transaction(transaction_id)
        changes = patch.model_dump(exclude_unset=True)
        requested = changes.pop("status", None)

        if requested is not None and requested != transaction.status and not transaction.is_pending:
            raise InvalidTransitionError(
                transaction.status.value,
                SaleStatus(requested).value,
                "Cannot change status after leaving pending; use the complete or cancel operations",
            )

        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            if field == "customer_email" and value:
                value = str(value).lower()
            setattr(transaction, field, value)

        calculation_service.recalculate_sale(transaction)
        await self.repository.save_details(transaction)

        if requested == SaleStatus.COMPLETED:
            return await self._complete(transaction)
        if requested == SaleStatus.CANCELLED:
            return await self._cancel(transaction)
        return transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        """Only pending sales can be deleted."""
        transaction = await self.get_transaction(transaction_id)
        if not transaction.is_pending:
            raise InvalidTransitionError(
                transaction.status.value,
                "deleted",
                "Only pending sales can be deleted",
            )
        await self.repository.delete(transaction)
        logger.info(f"Deleted sales transaction {transaction_id}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def complete_transaction(self, transaction_id: str) -> SalesTransaction:
        transaction = await self.get_transaction(transaction_id)
        return await self._complete(transaction)

    async def cancel_transaction(self, transaction_id: str) -> SalesTransaction:
        transaction = await self.get_transaction(transaction_id)
        return await self._cancel(transaction)

    async def _complete(self, transaction: SalesTransaction) -> SalesTransaction:
        if transaction.status == SaleStatus.COMPLETED:
            # Already done; no second write to the sale or the vehicle
            return transaction
        if transaction.status == SaleStatus.CANCELLED:
            raise InvalidTransitionError(
                transaction.status.value,
                SaleStatus.COMPLETED.value,
                "Cannot complete a cancelled sale",
            )

        closed_at = transaction.closed_at or datetime.utcnow()
        moved = await self.repository.transition(
            transaction.id,
            SaleStatus.PENDING,
            {
                "status": SaleStatus.COMPLETED.value,
                "closed_at": closed_at,
                "vehicle_sync": VehicleSyncState.PENDING.value,
                "vehicle_sync_error": None,
            },
        )
        if not moved:
            return await self._settled_elsewhere(transaction.id, SaleStatus.COMPLETED)

        transaction.status = SaleStatus.COMPLETED
        transaction.closed_at = closed_at
        transaction.vehicle_sync = VehicleSyncState.PENDING
        transaction.vehicle_sync_error = None
        logger.info(f"Sales transaction {transaction.id} completed")

        await self._sync_vehicle(transaction)
        return transaction

    async def _cancel(self, transaction: SalesTransaction) -> SalesTransaction:
        if transaction.status == SaleStatus.CANCELLED:
            return transaction
        if transaction.status == SaleStatus.COMPLETED:
            raise InvalidTransitionError(
                transaction.status.value,
                SaleStatus.CANCELLED.value,
                "Cannot cancel a completed sale",
            )

        moved = await self.repository.transition(
            transaction.id,
            SaleStatus.PENDING,
            {"status": SaleStatus.CANCELLED.value},
        )
        if not moved:
            return await self._settled_elsewhere(transaction.id, SaleStatus.CANCELLED)

        transaction.status = SaleStatus.CANCELLED
        logger.info(f"Sales transaction {transaction.id} cancelled")
        return transaction

    async def _settled_elsewhere(
        self,
        transaction_id: PydanticObjectId,
        requested: SaleStatus,
    ) -> SalesTransaction:
        """
        The sale left pending between our read and our write. Same outcome
        is a no-op; the opposite one is an illegal transition.
        """
        current = await self.get_transaction(transaction_id)
        if current.status == requested:
            return current
        logger.warning(
            f"Sales transaction {transaction_id} became {current.status.value} "
            f"before it could be {requested.value}"
        )
        raise InvalidTransitionError(current.status.value, requested.value)

    # ------------------------------------------------------------------
    # Vehicle-sold side effect
    # ------------------------------------------------------------------

    async def _sync_vehicle(self, transaction: SalesTransaction) -> VehicleSyncState:
        """
        Mark the sold vehicle and record the outcome on the transaction.

        Never raises: a missing "sold" status or a failed vehicle write
        leaves the sale completed and is recorded as drift instead.
        """
        error = None
        touched = False
        try:
            sold = await self.lookups.find_sold_status()
            if sold is None:
                state = VehicleSyncState.SKIPPED
                error = "No 'sold' status is configured"
                logger.warning(
                    f"No 'sold' status found; vehicle {transaction.vehicle} left unchanged "
                    f"for sale {transaction.id}"
                )
            else:
                modified = await self.vehicles.mark_sold(
                    transaction.vehicle,
                    sold.id,
                    transaction.id,
                    transaction.sale_price,
                    transaction.closed_at or datetime.utcnow(),
                )
                touched = modified > 0
                if not touched and await self.vehicles.get_by_id(transaction.vehicle) is None:
                    state = VehicleSyncState.FAILED
                    error = f"Vehicle {transaction.vehicle} not found"
                    logger.warning(f"Sale {transaction.id} references missing vehicle {transaction.vehicle}")
                else:
                    state = VehicleSyncState.SYNCED
        except Exception as e:
            state = VehicleSyncState.FAILED
            error = str(e)
            logger.error(f"Failed to mark vehicle {transaction.vehicle} sold for sale {transaction.id}: {e}")

        transaction.vehicle_sync = state
        transaction.vehicle_sync_error = error
        await self.repository.record_vehicle_sync(transaction.id, state, error)

        if touched:
            vehicle = await self.vehicles.get_by_id(transaction.vehicle)
            slug = vehicle.marketing.slug if vehicle else None
            await invalidate_vehicle(self.cache, transaction.vehicle, slug)
        return state

    async def list_sync_drift(self, limit: int = 100) -> List[SalesTransaction]:
        """Completed sales whose vehicle is not (yet) marked sold."""
        return await self.repository.find_drift(limit=limit)

    async def reconcile_vehicle_sync(self, limit: int = 100) -> ReconcileResultSchema:
        """
        Re-run the vehicle side effect for every drifted sale.

        Returns:
            Counts per outcome
        """
        result = ReconcileResultSchema()
        for transaction in await self.repository.find_drift(limit=limit):
            result.checked += 1
            state = await self._sync_vehicle(transaction)
            if state == VehicleSyncState.SYNCED:
                result.synced += 1
            elif state == VehicleSyncState.SKIPPED:
                result.skipped += 1
            else:
                result.failed += 1
        if result.checked:
            logger.info(
                f"Reconciled {result.checked} sales: {result.synced} synced, "
                f"{result.skipped} skipped, {result.failed} failed"
            )
        return result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def summarize_sales(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        salesperson: Optional[PydanticObjectId] = None,
    ) -> List[SalesSummaryRowSchema]:
        """Count and money totals grouped by status."""
        rows: List[Dict[str, Any]] = await self.repository.summarize(
            build_summary_pipeline(date_from, date_to, salesperson)
        )
        return [
            SalesSummaryRowSchema(
                status=str(getattr(row["_id"], "value", row["_id"])),
                count=row.get("count", 0),
                total_revenue=_money(row.get("total_revenue")),
                total_gross=_money(row.get("total_gross")),
                total_margin=_money(row.get("total_margin")),
            )
            for row in rows
        ]


def get_sales_transaction_service() -> SalesTransactionService:
    """
    Factory function to create SalesTransactionService instance.
    """
    return SalesTransactionService()
