from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import re

from beanie import PydanticObjectId
from pymongo import DESCENDING

from royaldrive.models.sales_transaction import (
    SalesTransaction,
    SaleStatus,
    VehicleSyncState,
)
from royaldrive.schemas.sales_transaction import SalesListFilters


def _date_range(date_from: Optional[datetime], date_to: Optional[datetime]) -> Dict[str, Any]:
    bounds: Dict[str, Any] = {}
    if date_from is not None:
        bounds["$gte"] = date_from
    if date_to is not None:
        bounds["$lte"] = date_to
    return bounds


def build_sales_query(filters: Optional[SalesListFilters]) -> Dict[str, Any]:
    """Build the MongoDB filter for a sales listing."""
    query: Dict[str, Any] = {}
    if filters is None:
        return query

    if filters.status is not None:
        query["status"] = filters.status.value
    if filters.salesperson is not None:
        query["salesperson"] = filters.salesperson
    if filters.vehicle is not None:
        query["vehicle"] = filters.vehicle

    created = _date_range(filters.date_from, filters.date_to)
    if created:
        query["created_at"] = created

    if filters.search:
        pattern = {"$regex": re.escape(filters.search.strip()), "$options": "i"}
        query["$or"] = [
            {"customer_name": pattern},
            {"customer_email": pattern},
            {"external_deal_id": pattern},
        ]
    return query


def build_summary_pipeline(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    salesperson: Optional[PydanticObjectId] = None,
) -> List[Dict[str, Any]]:
    """
    Aggregation grouping transactions by status.

    Each row: status, count, totalRevenue (sum of total price),
    totalGross (sum of sale price), totalMargin (sum of margin).
    """
    match: Dict[str, Any] = {}
    created = _date_range(date_from, date_to)
    if created:
        match["created_at"] = created
    if salesperson is not None:
        match["salesperson"] = salesperson

    return [
        {"$match": match},
        {
            "$group": {
                "_id": "$status",
                "count": {"$sum": 1},
                "total_revenue": {"$sum": "$total_price"},
                "total_gross": {"$sum": "$sale_price"},
                "total_margin": {"$sum": "$margin"},
            }
        },
        {"$sort": {"_id": 1}},
    ]


DRIFT_QUERY = {
    "status": SaleStatus.COMPLETED.value,
    "vehicle_sync": {"$ne": VehicleSyncState.SYNCED.value},
}

# Written only by conditional updates, never by a detail save
LIFECYCLE_FIELDS = {
    "id",
    "revision_id",
    "status",
    "closed_at",
    "vehicle_sync",
    "vehicle_sync_error",
    "created_at",
}


class SalesTransactionRepository:
    """
    Repository for sales transaction persistence (MongoDB/Beanie).
    """

    async def get_by_id(self, transaction_id: Any) -> Optional[SalesTransaction]:
        """Get transaction by ID. Returns None for malformed ids."""
        if not PydanticObjectId.is_valid(str(transaction_id)):
            return None
        return await self.find_one({"_id": PydanticObjectId(str(transaction_id))})

    async def find_page(
        self,
        query: Dict[str, Any],
        skip: int,
        limit: int,
    ) -> Tuple[List[SalesTransaction], int]:
        """Newest first page plus total count."""
        items = await self.find_many(
            query,
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
            skip=skip,
            limit=limit,
        )
        total = await self.count(query)
        return items, total

    async def find_drift(self, limit: int = 0) -> List[SalesTransaction]:
        """Completed transactions whose vehicle was never marked sold."""
        return await self.find_many(DRIFT_QUERY, sort=[("closed_at", DESCENDING)], limit=limit)

    async def has_completed_sale(self, vehicle_id: PydanticObjectId) -> bool:
        found = await self.find_one({"vehicle": vehicle_id, "status": SaleStatus.COMPLETED.value})
        return found is not None

    async def insert(self, transaction: SalesTransaction) -> SalesTransaction:
        await transaction.insert()
        return transaction

    async def save_details(self, transaction: SalesTransaction) -> int:
        """
        Persist everything except the lifecycle fields, which only move
        through transition() and record_vehicle_sync().
        """
        fields = transaction.model_dump(exclude=LIFECYCLE_FIELDS)
        fields["updated_at"] = datetime.utcnow()
        return await self.update_one({"_id": transaction.id}, {"$set": fields})

    async def transition(
        self,
        transaction_id: PydanticObjectId,
        from_status: SaleStatus,
        changes: Dict[str, Any],
    ) -> bool:
        """
        Move a sale out of from_status in a single conditional write.

        Returns:
            False when the stored status is no longer from_status
        """
        modified = await self.update_one(
            {"_id": transaction_id, "status": from_status.value},
            {"$set": {**changes, "updated_at": datetime.utcnow()}},
        )
        return modified > 0

    async def record_vehicle_sync(
        self,
        transaction_id: PydanticObjectId,
        state: VehicleSyncState,
        error: Optional[str] = None,
    ) -> None:
        await self.update_one(
            {"_id": transaction_id},
            {"$set": {
                "vehicle_sync": state.value,
                "vehicle_sync_error": error,
                "updated_at": datetime.utcnow(),
            }},
        )

    async def delete(self, transaction: SalesTransaction) -> None:
        await transaction.delete()

    async def summarize(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await SalesTransaction.aggregate(pipeline).to_list()

    # Storage primitives

    async def find_one(self, query: Dict[str, Any]) -> Optional[SalesTransaction]:
        return await SalesTransaction.find_one(query)

    async def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[SalesTransaction]:
        cursor = SalesTransaction.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()

    async def count(self, query: Dict[str, Any]) -> int:
        return await SalesTransaction.find(query).count()

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> int:
        result = await SalesTransaction.get_pymongo_collection().update_one(query, update)
        return result.modified_count
