from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import logging
import re

from beanie import PydanticObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from royaldrive.core.exceptions import ConflictError
from royaldrive.models.vehicle import Vehicle
from royaldrive.schemas.vehicle import VehicleListFilters

# Logger setup
logger = logging.getLogger(__name__)

# (error field, document path) for every unique index on vehicles
UNIQUE_FIELDS = (
    ("vin", "vin"),
    ("stock_number", "internal.stock_number"),
    ("slug", "marketing.slug"),
)

# Public sort keys -> document paths
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "year": "year",
    "price": "pricing.list_price",
    "listPrice": "pricing.list_price",
    "odometer": "odometer.value",
    "stockNumber": "internal.stock_number",
}
DEFAULT_SORT = [("created_at", DESCENDING)]


def parse_sort(sort: Optional[str]) -> List[Tuple[str, int]]:
    """
    Turn "price" / "-price" into a sort spec.
    Unknown keys fall back to newest first.
    """
    if not sort:
        return list(DEFAULT_SORT)
    direction = DESCENDING if sort.startswith("-") else ASCENDING
    path = SORT_FIELDS.get(sort.lstrip("-+"))
    if path is None:
        return list(DEFAULT_SORT)
    return [(path, direction), ("_id", direction)]


def build_vehicle_query(filters: Optional[VehicleListFilters]) -> Dict[str, Any]:
    """Build the MongoDB filter for a vehicle listing."""
    query: Dict[str, Any] = {}
    if filters is None:
        return query

    exact = (
        ("make", "make"),
        ("model", "model"),
        ("vehicle_type", "vehicle_type"),
        ("status", "status"),
        ("fuel_type", "engine.fuel_type"),
    )
    for attr, path in exact:
        value = getattr(filters, attr)
        if value is not None:
            query[path] = value

    if filters.condition is not None:
        query["condition"] = filters.condition.value

    if filters.year is not None:
        query["year"] = filters.year
    elif filters.min_year is not None or filters.max_year is not None:
        query["year"] = {}
        if filters.min_year is not None:
            query["year"]["$gte"] = filters.min_year
        if filters.max_year is not None:
            query["year"]["$lte"] = filters.max_year

    if filters.min_price is not None or filters.max_price is not None:
        query["pricing.list_price"] = {}
        if filters.min_price is not None:
            query["pricing.list_price"]["$gte"] = filters.min_price
        if filters.max_price is not None:
            query["pricing.list_price"]["$lte"] = filters.max_price

    if filters.featured is not None:
        query["marketing.featured"] = filters.featured

    if filters.q:
        pattern = {"$regex": re.escape(filters.q.strip()), "$options": "i"}
        query["$or"] = [
            {"marketing.keywords": pattern},
            {"marketing.description": pattern},
            {"trim": pattern},
            {"vin": pattern},
            {"internal.stock_number": pattern},
        ]

    return query


def build_mark_sold(
    vehicle_id: PydanticObjectId,
    status_id: PydanticObjectId,
    transaction_id: PydanticObjectId,
    sale_price: float,
    sold_at: datetime,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Filter and update for the vehicle-sold write.

    The filter only matches while the vehicle is not already marked sold by
    this transaction, so replaying the write is a no-op.
    """
    query = {
        "_id": vehicle_id,
        "$or": [
            {"status": {"$ne": status_id}},
            {"internal.sale_transaction": {"$ne": transaction_id}},
        ],
    }
    now = datetime.utcnow()
    update = {
        "$set": {
            "status": status_id,
            "internal.sale_transaction": transaction_id,
            "internal.actual_sale_price": sale_price,
            "internal.sold_date": sold_at,
            "availability.last_updated": now,
            "updated_at": now,
        }
    }
    return query, update


def _value_at(vehicle: Vehicle, path: str) -> Any:
    value: Any = vehicle
    for part in path.split("."):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


class VehicleRepository:
    """
    Repository for vehicle database operations (MongoDB/Beanie).
    Translates unique index violations into ConflictError.
    """

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_by_id(self, vehicle_id: Any) -> Optional[Vehicle]:
        """Get vehicle by ObjectId. Returns None for malformed ids."""
        if not PydanticObjectId.is_valid(str(vehicle_id)):
            return None
        return await self.find_one({"_id": PydanticObjectId(str(vehicle_id))})

    async def get_by_vin(self, vin: str) -> Optional[Vehicle]:
        return await self.find_one({"vin": vin.strip().upper()})

    async def get_by_stock_number(self, stock_number: str) -> Optional[Vehicle]:
        return await self.find_one({"internal.stock_number": stock_number.strip()})

    async def get_by_slug(self, slug: str) -> Optional[Vehicle]:
        return await self.find_one({"marketing.slug": slug})

    async def get_by_id_or_alternate(self, key: str) -> Optional[Vehicle]:
        """
        Resolve a vehicle by id, then VIN, then stock number.
        """
        vehicle = await self.get_by_id(key)
        if vehicle is None:
            vehicle = await self.get_by_vin(key)
        if vehicle is None:
            vehicle = await self.get_by_stock_number(key)
        return vehicle

    async def find_page(
        self,
        query: Dict[str, Any],
        sort: List[Tuple[str, int]],
        skip: int,
        limit: int,
    ) -> Tuple[List[Vehicle], int]:
        """Return one page of vehicles and the total match count."""
        items = await self.find_many(query, sort=sort, skip=skip, limit=limit)
        total = await self.count(query)
        return items, total

    async def latest_stock_number(self, prefix: str) -> Optional[str]:
        """Greatest stock number starting with prefix, if any."""
        found = await self.find_many(
            {"internal.stock_number": {"$regex": f"^{re.escape(prefix)}"}},
            sort=[("internal.stock_number", DESCENDING)],
            limit=1,
        )
        if not found:
            return None
        return found[0].internal.stock_number

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, vehicle: Vehicle) -> Vehicle:
        try:
            await self._insert(vehicle)
        except DuplicateKeyError as exc:
            conflict = await self._conflict_from(exc, vehicle)
            raise conflict from exc
        return vehicle

    async def save(self, vehicle: Vehicle) -> Vehicle:
        try:
            await self._replace(vehicle)
        except DuplicateKeyError as exc:
            conflict = await self._conflict_from(exc, vehicle)
            raise conflict from exc
        return vehicle

    async def delete(self, vehicle: Vehicle) -> None:
        await vehicle.delete()

    async def mark_sold(
        self,
        vehicle_id: PydanticObjectId,
        status_id: PydanticObjectId,
        transaction_id: PydanticObjectId,
        sale_price: float,
        sold_at: datetime,
    ) -> int:
        """
        Flip the vehicle to the sold status and stamp the sale.

        Returns:
            Number of modified documents (0 when already applied)
        """
        query, update = build_mark_sold(vehicle_id, status_id, transaction_id, sale_price, sold_at)
        return await self.update_one(query, update)

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    async def find_one(self, query: Dict[str, Any]) -> Optional[Vehicle]:
        return await Vehicle.find_one(query)

    async def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Vehicle]:
        cursor = Vehicle.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()

    async def count(self, query: Dict[str, Any]) -> int:
        return await Vehicle.find(query).count()

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> int:
        result = await Vehicle.get_pymongo_collection().update_one(query, update)
        return result.modified_count

    async def _insert(self, vehicle: Vehicle) -> None:
        await vehicle.insert()

    async def _replace(self, vehicle: Vehicle) -> None:
        await vehicle.save()

    async def _conflict_from(self, exc: DuplicateKeyError, vehicle: Vehicle) -> ConflictError:
        """Work out which unique field an insert/replace collided on."""
        details = exc.details or {}
        key_pattern = details.get("keyPattern") or {}
        for field, path in UNIQUE_FIELDS:
            if path in key_pattern:
                return ConflictError(field, _value_at(vehicle, path))

        # Some servers/drivers omit keyPattern; look for the colliding document
        for field, path in UNIQUE_FIELDS:
            value = _value_at(vehicle, path)
            if value is None:
                continue
            query: Dict[str, Any] = {path: value}
            if vehicle.id is not None:
                query["_id"] = {"$ne": vehicle.id}
            if await self.find_one(query) is not None:
                return ConflictError(field, value)

        logger.warning(f"Unattributed duplicate key error: {exc}")
        return ConflictError("unique key")
