"""
Re-apply the vehicle-sold update for completed sales whose vehicle was
never marked sold (missing "sold" status at the time, or a failed write).

Usage:
    python reconcile_sales.py            # reconcile
    python reconcile_sales.py --dry-run  # only list the drifted sales
"""
import argparse
import asyncio
import logging

from royaldrive.core.config import settings
from royaldrive.core.database import init_db
from royaldrive.services.sales_transaction_service import SalesTransactionService

logging.basicConfig(level=logging.INFO)


async def main(dry_run: bool, limit: int):
    # Mask password
    print(f"Connecting to DB: {settings.DATABASE_URL.split('@')[-1] if '@' in settings.DATABASE_URL else 'LOCAL'}")
    db = await init_db()
    print(f"Database Name: {db.name}")

    service = SalesTransactionService()
    drift = await service.list_sync_drift(limit)
    print(f"\nCompleted sales not synced to their vehicle: {len(drift)}")
    for sale in drift:
        print(f"ID: {sale.id}, Vehicle: {sale.vehicle}, Sync: {sale.vehicle_sync.value}")
        if sale.vehicle_sync_error:
            print(f"  Error: {sale.vehicle_sync_error}")

    if dry_run or not drift:
        return

    result = await service.reconcile_vehicle_sync(limit)
    print(
        f"\nChecked {result.checked}: {result.synced} synced, "
        f"{result.skipped} skipped, {result.failed} failed"
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--dry-run", action="store_true", help="List drifted sales without writing")
    parser.add_argument("--limit", type=int, default=500, help="Maximum sales to process")
    args = parser.parse_args()
    asyncio.run(main(args.dry_run, args.limit))
