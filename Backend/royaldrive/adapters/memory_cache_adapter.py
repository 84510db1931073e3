"""
In-process vehicle cache.

Entries live in a dict on this process only; a second API instance keeps
its own copy. Use the Redis adapter when running more than one instance.
"""
import copy
import time
from typing import Any, Callable, Dict, Optional, Tuple

from royaldrive.adapters.cache_adapter_interface import VehicleCacheInterface


class MemoryVehicleCache(VehicleCacheInterface):
    """Dictionary cache with per-entry TTL."""

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        # Callers get their own copy so they cannot mutate the shared entry
        return copy.deepcopy(value)

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (self._clock() + ttl, copy.deepcopy(value))

    async def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def invalidate_pattern(self, prefix: str) -> int:
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)
