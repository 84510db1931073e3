"""
Vehicle Cache Service - Factory Pattern

Selects the cache backend from VEHICLE_CACHE_BACKEND and provides the
best-effort helpers the vehicle and sales services share.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Optional

from royaldrive.adapters.cache_adapter_interface import (
    LIST_KEY_PREFIX,
    VehicleCacheInterface,
    id_key,
    slug_key,
)
from royaldrive.adapters.memory_cache_adapter import MemoryVehicleCache
from royaldrive.core.config import settings

logger = logging.getLogger(__name__)


def get_vehicle_cache_adapter() -> VehicleCacheInterface:
    """
    Factory function to get the configured vehicle cache.

    Returns:
        Cache adapter instance based on configuration
    """
    backend = settings.VEHICLE_CACHE_BACKEND
    ttl = settings.VEHICLE_CACHE_TTL_SECONDS

    if backend == "memory":
        return MemoryVehicleCache(default_ttl=ttl)
    elif backend == "redis":
        from royaldrive.adapters.redis_cache_adapter import RedisVehicleCache
        return RedisVehicleCache(settings.REDIS_URL, default_ttl=ttl)
    else:
        raise ValueError(f"Unknown vehicle cache backend: {backend}")


def list_key(params: Dict[str, Any]) -> str:
    """Cache key for one list query; equal queries map to the same key."""
    canonical = json.dumps(params, sort_keys=True, default=str)
    return LIST_KEY_PREFIX + hashlib.sha1(canonical.encode("utf-8")).hexdigest()


async def cache_get(cache: VehicleCacheInterface, key: str) -> Optional[Dict[str, Any]]:
    """Read through the cache; backend errors count as a miss."""
    try:
        return await cache.get(key)
    except Exception as e:
        logger.warning(f"Vehicle cache read failed for {key}: {e}")
        return None


async def cache_set(cache: VehicleCacheInterface, key: str, value: Dict[str, Any]) -> None:
    try:
        await cache.set(key, value)
    except Exception as e:
        logger.warning(f"Vehicle cache write failed for {key}: {e}")


async def invalidate_vehicle(
    cache: VehicleCacheInterface,
    vehicle_id: Any,
    *slugs: Optional[str],
) -> None:
    """
    Drop every cached view a vehicle mutation can make stale: the slug
    keys (old and new), the id key and all cached list pages.
    """
    keys = [id_key(str(vehicle_id))]
    keys.extend(slug_key(slug) for slug in set(slugs) if slug)
    try:
        for key in keys:
            await cache.invalidate(key)
        pages = await cache.invalidate_pattern(LIST_KEY_PREFIX)
        logger.info(f"Invalidated cache for vehicle {vehicle_id} ({len(keys)} keys, {pages} list pages)")
    except Exception as e:
        logger.error(f"Vehicle cache invalidation failed for {vehicle_id}: {e}")


async def close_vehicle_cache(cache: Optional[VehicleCacheInterface] = None) -> None:
    """Shutdown hook; a failing close is logged, not raised."""
    cache = cache if cache is not None else vehicle_cache
    try:
        await cache.close()
        logger.info(f"Closed vehicle cache ({type(cache).__name__})")
    except Exception as e:
        logger.warning(f"Closing vehicle cache failed: {e}")


# Singleton instance
vehicle_cache = get_vehicle_cache_adapter()
