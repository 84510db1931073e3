"""
Redis-backed vehicle cache.

Shared between API instances so an invalidation on one instance is seen
by all of them. Values are stored as JSON strings with SETEX.
"""
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from royaldrive.adapters.cache_adapter_interface import VehicleCacheInterface

logger = logging.getLogger(__name__)


class RedisVehicleCache(VehicleCacheInterface):
    """Vehicle cache on a Redis server"""

    SCAN_BATCH = 500

    def __init__(self, url: str, default_ttl: int = 300, client: Optional[redis.Redis] = None):
        self.default_ttl = default_ttl
        self.client = client or redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Dropping undecodable cache entry {key}")
            await self.client.delete(key)
            return None

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        await self.client.setex(key, ttl, json.dumps(value, default=str))

    async def invalidate(self, key: str) -> bool:
        return bool(await self.client.delete(key))

    async def invalidate_pattern(self, prefix: str) -> int:
        removed = 0
        batch = []
        async for key in self.client.scan_iter(match=f"{prefix}*", count=self.SCAN_BATCH):
            batch.append(key)
            if len(batch) >= self.SCAN_BATCH:
                removed += await self.client.delete(*batch)
                batch = []
        if batch:
            removed += await self.client.delete(*batch)
        return removed

    async def close(self) -> None:
        await self.client.aclose()
