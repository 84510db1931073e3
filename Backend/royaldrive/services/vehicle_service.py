from typing import Any, Dict, List, Optional, Type
from datetime import datetime
import logging

from pydantic import BaseModel, ValidationError

from royaldrive.adapters.cache_adapter_interface import VehicleCacheInterface, id_key, slug_key
from royaldrive.core.config import settings
from royaldrive.core.exceptions import ConflictError, InvalidUpdateError, NotFoundError
from royaldrive.models.lookups import Make, Model
from royaldrive.models.vehicle import InternalInfo, Marketing, Vehicle
from royaldrive.repositories.lookup_repository import LookupRepository
from royaldrive.repositories.sales_transaction_repository import SalesTransactionRepository
from royaldrive.repositories.vehicle_repository import (
    VehicleRepository,
    build_vehicle_query,
    parse_sort,
)
from royaldrive.schemas.common import PaginationSchema
from royaldrive.schemas.vehicle import (
    VehicleCreateSchema,
    VehicleListFilters,
    VehicleUpdateSchema,
)
from royaldrive.services.reference_resolver import ReferenceResolver, ResolveProfile
from royaldrive.services.stock_number_service import StockNumberService, build_vehicle_slug
from royaldrive.services.vehicle_cache_service import (
    cache_get,
    cache_set,
    invalidate_vehicle,
    list_key,
    vehicle_cache,
)
from royaldrive.services.view_redactor import ViewProfile, profile_for, redact

logger = logging.getLogger(__name__)

# A slug collision can only come from a stock number collision (the slug
# embeds the stock number), so both are retried with a fresh allocation
RETRYABLE_CONFLICTS = ("stock_number", "slug")
SLUG_INPUTS = ("year", "make", "model")


def clamp_page(page: Optional[int], limit: Optional[int], default_limit: int) -> tuple:
    """Normalise paging input: page >= 1, 1 <= limit <= PAGE_LIMIT_MAX."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, min(limit, settings.PAGE_LIMIT_MAX)


def deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested dicts key by key; non-dict values replace."""
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def drop_uncleared_nulls(model: Type[BaseModel], changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove explicit nulls aimed at fields that cannot be cleared (required
    fields and fields with a non-null default), descending into nested blocks.
    """
    cleaned = {}
    for key, value in changes.items():
        field = model.model_fields.get(key)
        if field is None:
            cleaned[key] = value
            continue
        if value is None and (field.is_required() or field.default is not None):
            continue
        nested = field.annotation
        if isinstance(value, dict) and isinstance(nested, type) and issubclass(nested, BaseModel):
            value = drop_uncleared_nulls(nested, value)
        cleaned[key] = value
    return cleaned


class VehicleService:
    """Service for vehicle business logic (Async)"""

    def __init__(
        self,
        repository: Optional[VehicleRepository] = None,
        lookups: Optional[LookupRepository] = None,
        sales: Optional[SalesTransactionRepository] = None,
        cache: Optional[VehicleCacheInterface] = None,
        stock_numbers: Optional[StockNumberService] = None,
    ):
        self.repository = repository or VehicleRepository()
        self.lookups = lookups or LookupRepository()
        self.sales = sales or SalesTransactionRepository()
        self.cache = cache if cache is not None else vehicle_cache
        self.resolver = ReferenceResolver(self.lookups)
        self.stock_numbers = stock_numbers or StockNumberService(self.repository)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_vehicle_view(self, key: str, can_view_internal: bool = False) -> Dict[str, Any]:
        """
        Single vehicle by id (falling back to VIN, then stock number).

        Non-privileged reads by id are cached; internal views never are.
        """
        cache_key = id_key(key)
        if not can_view_internal:
            cached = await cache_get(self.cache, cache_key)
            if cached is not None:
                return cached

        vehicle = await self._get_or_404(key)
        view = await self.resolver.resolve(vehicle, ResolveProfile.FULL)
        payload = redact(view, profile_for(can_view_internal))

        if not can_view_internal and str(vehicle.id) == key:
            await cache_set(self.cache, cache_key, payload)
        return payload

    async def get_vehicle_view_by_slug(self, slug: str) -> Dict[str, Any]:
        """
        Storefront lookup. Always the public-by-slug profile, whoever asks.
        """
        cache_key = slug_key(slug)
        cached = await cache_get(self.cache, cache_key)
        if cached is not None:
            return cached

        vehicle = await self.repository.get_by_slug(slug)
        if vehicle is None:
            raise NotFoundError("Vehicle", slug)

        view = await self.resolver.resolve(vehicle, ResolveProfile.LIGHT)
        payload = redact(view, ViewProfile.PUBLIC_SLUG)
        await cache_set(self.cache, cache_key, payload)
        return payload

    async def list_vehicle_views(
        self,
        filters: Optional[VehicleListFilters] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
        can_view_internal: bool = False,
    ) -> Dict[str, Any]:
        """
        Paginated listing with light reference resolution.

        Returns:
            {"items": [...], "pagination": {...}}
        """
        page, limit = clamp_page(page, limit, settings.VEHICLE_PAGE_LIMIT_DEFAULT)

        cache_key = None
        if not can_view_internal:
            cache_key = list_key({
                "filters": filters.model_dump(mode="json", exclude_none=True) if filters else {},
                "page": page,
                "limit": limit,
                "sort": sort or "",
            })
            cached = await cache_get(self.cache, cache_key)
            if cached is not None:
                return cached

        vehicles, total = await self.repository.find_page(
            build_vehicle_query(filters),
            parse_sort(sort),
            skip=(page - 1) * limit,
            limit=limit,
        )
        views = await self.resolver.resolve_many(vehicles, ResolveProfile.LIGHT)
        profile = profile_for(can_view_internal)

        payload = {
            "items": [redact(view, profile) for view in views],
            "pagination": PaginationSchema.build(page, limit, total).model_dump(by_alias=True),
        }
        if cache_key is not None:
            await cache_set(self.cache, cache_key, payload)
        return payload

    async def list_featured(self, limit: int = 6) -> List[Dict[str, Any]]:
        """Featured vehicles that are still on sale, newest first."""
        available = await self.lookups.find_available_status()
        if available is None:
            logger.warning("No 'available' status configured; featured list is empty")
            return []

        result = await self.list_vehicle_views(
            VehicleListFilters(featured=True, status=available.id),
            page=1,
            limit=limit,
            can_view_internal=False,
        )
        return [redact(item, ViewProfile.PUBLIC_SLUG) for item in result["items"]]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_vehicle(self, data: VehicleCreateSchema) -> Dict[str, Any]:
        """
        Vehicle intake: allocate a stock number, derive the slug and insert.

        A stock number (or slug) collision is retried with a fresh
        allocation up to STOCK_NUMBER_MAX_RETRIES times; any other
        conflict is raised immediately.
        """
        make_name, model_name = await self._slug_names(data.make, data.model)
        retries = max(1, settings.STOCK_NUMBER_MAX_RETRIES)

        attempt = 0
        while True:
            stock_number = await self.stock_numbers.allocate()
            vehicle = self._build_vehicle(
                data,
                stock_number,
                build_vehicle_slug(data.year, make_name, model_name, stock_number),
            )
            try:
                await self.repository.insert(vehicle)
                break
            except ConflictError as e:
                if e.field not in RETRYABLE_CONFLICTS or attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Stock number {stock_number} collided ({e.field}); "
                    f"retrying allocation ({attempt}/{retries})"
                )

        logger.info(f"Created vehicle {vehicle.id} with stock number {stock_number}")
        await invalidate_vehicle(self.cache, vehicle.id, vehicle.marketing.slug)

        view = await self.resolver.resolve(vehicle, ResolveProfile.FULL)
        return redact(view, ViewProfile.INTERNAL)

    async def update_vehicle(
        self,
        key: str,
        patch: VehicleUpdateSchema,
        can_view_internal: bool = True,
    ) -> Dict[str, Any]:
        """
        Partial update. Nested blocks are merged, the stock number never
        changes and the slug is rebuilt only when year, make or model change.
        """
        vehicle = await self._get_or_404(key)
        changes = drop_uncleared_nulls(Vehicle, patch.model_dump(exclude_unset=True))
        old_slug = vehicle.marketing.slug

        merged = deep_merge(vehicle.model_dump(exclude={"id", "revision_id"}), changes)
        try:
            updated = Vehicle.model_validate({**merged, "id": vehicle.id})
        except ValidationError as e:
            raise InvalidUpdateError(
                "vehicle",
                e.errors(include_url=False, include_context=False, include_input=False),
            )

        if any(field in changes for field in SLUG_INPUTS) or not updated.marketing.slug:
            make_name, model_name = await self._slug_names(updated.make, updated.model)
            updated.marketing.slug = build_vehicle_slug(
                updated.year,
                make_name,
                model_name,
                updated.internal.stock_number or str(updated.id),
            )

        await self.repository.save(updated)
        await invalidate_vehicle(self.cache, updated.id, old_slug, updated.marketing.slug)

        view = await self.resolver.resolve(updated, ResolveProfile.FULL)
        return redact(view, profile_for(can_view_internal))

    async def update_vehicle_status(self, key: str, status_id: Any) -> Dict[str, Any]:
        """Move a vehicle to another lifecycle status."""
        vehicle = await self._get_or_404(key)
        status = await self.lookups.get_status(status_id)
        if status is None:
            raise NotFoundError("Status", status_id)

        vehicle.status = status.id
        vehicle.availability.last_updated = datetime.utcnow()
        await self.repository.save(vehicle)
        await invalidate_vehicle(self.cache, vehicle.id, vehicle.marketing.slug)

        view = await self.resolver.resolve(vehicle, ResolveProfile.FULL)
        return redact(view, ViewProfile.INTERNAL)

    async def delete_vehicle(self, key: str) -> None:
        vehicle = await self._get_or_404(key)
        if await self.sales.has_completed_sale(vehicle.id):
            logger.warning(
                f"Deleting vehicle {vehicle.id} which is referenced by a completed sale"
            )
        await self.repository.delete(vehicle)
        await invalidate_vehicle(self.cache, vehicle.id, vehicle.marketing.slug)
        logger.info(f"Deleted vehicle {vehicle.id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_or_404(self, key: str) -> Vehicle:
        vehicle = await self.repository.get_by_id_or_alternate(key)
        if vehicle is None:
            raise NotFoundError("Vehicle", key)
        return vehicle

    async def _slug_names(self, make_id, model_id) -> tuple:
        """Make and model slug (or name) used to build the vehicle slug."""
        makes = await self.lookups.get_many(Make, [make_id])
        models = await self.lookups.get_many(Model, [model_id])
        make = makes.get(make_id)
        model = models.get(model_id)
        make_name = (make.slug or make.name) if make else None
        model_name = (model.slug or model.name) if model else None
        return make_name, model_name

    @staticmethod
    def _build_vehicle(data: VehicleCreateSchema, stock_number: str, slug: str) -> Vehicle:
        fields = data.model_dump(exclude={"internal", "marketing"})
        internal = data.internal.model_dump(exclude_none=True)
        marketing = data.marketing.model_dump()
        return Vehicle(
            **fields,
            internal=InternalInfo(**internal, stock_number=stock_number),
            marketing=Marketing(**marketing, slug=slug),
        )


def get_vehicle_service() -> VehicleService:
    """
    Factory function to create VehicleService instance.
    """
    return VehicleService()
