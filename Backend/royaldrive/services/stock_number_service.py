"""
Stock Number Service

Allocates human-readable stock numbers (RD-2025-000042) and builds the
storefront slug that embeds them.

Allocation reads the current maximum for the year and adds one. Two
concurrent allocations can pick the same number; the unique index on
internal.stock_number rejects the second insert and vehicle creation
retries with a fresh allocation.
"""
import logging
import re
from datetime import datetime
from typing import Callable, Optional

from royaldrive.core.config import settings
from royaldrive.repositories.vehicle_repository import VehicleRepository

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 6
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: Optional[str]) -> str:
    """Lower-case, collapse every non-alphanumeric run to one dash, trim dashes."""
    if not text:
        return ""
    return _NON_ALNUM.sub("-", str(text).lower()).strip("-")


def build_vehicle_slug(
    year: int,
    make: Optional[str],
    model: Optional[str],
    stock_number: str,
) -> str:
    """
    <year>-<make>-<model>-<stock number>

    make/model are the lookup slugs, or names when a lookup has no slug.
    """
    parts = [
        str(year),
        slugify(make) or "unknown",
        slugify(model) or "unknown",
        stock_number,
    ]
    return slugify("-".join(parts))


class StockNumberService:
    """Year-scoped sequential stock numbers."""

    def __init__(
        self,
        repository: Optional[VehicleRepository] = None,
        prefix: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.repository = repository or VehicleRepository()
        self.prefix = prefix or settings.STOCK_NUMBER_PREFIX
        self._clock = clock

    def year_prefix(self, year: int) -> str:
        return f"{self.prefix}-{year}-"

    async def allocate(self, year: Optional[int] = None) -> str:
        """
        Next stock number for the year (current year by default).
        The first number of a year ends in 000001.
        """
        year = year or self._clock().year
        prefix = self.year_prefix(year)

        sequence = 1
        latest = await self.repository.latest_stock_number(prefix)
        if latest:
            tail = latest[len(prefix):]
            if tail.isdigit():
                sequence = int(tail) + 1
            else:
                logger.warning(f"Ignoring malformed stock number {latest}")

        return f"{prefix}{sequence:0{SEQUENCE_WIDTH}d}"
