"""
Vehicle Cache Adapter Interface

Abstract interface for the vehicle read cache.
This allows switching between the in-process cache and Redis without
touching the vehicle service.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


SLUG_KEY_PREFIX = "vehicle:slug:"
ID_KEY_PREFIX = "vehicle:id:"
LIST_KEY_PREFIX = "vehicles:list:"


def slug_key(slug: str) -> str:
    return f"{SLUG_KEY_PREFIX}{slug}"


def id_key(vehicle_id: str) -> str:
    return f"{ID_KEY_PREFIX}{vehicle_id}"


class VehicleCacheInterface(ABC):
    """Abstract interface for vehicle view caches"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get a cached view.

        Returns:
            A copy of the cached value, or None on a miss or expired entry
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Store a view.

        Args:
            key: Cache key
            value: JSON-serialisable view
            ttl: Seconds to live; the adapter default when omitted
        """
        pass

    @abstractmethod
    async def invalidate(self, key: str) -> bool:
        """Drop one key. Returns True if something was removed."""
        pass

    @abstractmethod
    async def invalidate_pattern(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns the number removed."""
        pass

    async def close(self) -> None:
        """Release connections on shutdown. Nothing to do by default."""
        return None
