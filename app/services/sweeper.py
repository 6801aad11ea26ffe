"""Background eviction of expired staged signups.

Lookups already treat expired records as missing; this loop only reclaims
the rows and frees their identities and tokens at the storage layer.
"""

import asyncio
import logging

from app.services.staging import StagingStore

logger = logging.getLogger(__name__)


async def sweep_expired(staging: StagingStore) -> int:
    """Delete staged records past their TTL. Returns the number removed."""
    removed = await staging.purge_expired()
    if removed:
        logger.info("Expiry sweep removed %d staged signups", removed)
    return removed


async def run_expiry_sweeper(staging: StagingStore, interval_seconds: float) -> None:
    try:
        while True:
            try:
                await sweep_expired(staging)
            except Exception:
                logger.exception("Expiry sweep failed, retrying in %ss", interval_seconds)
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("Expiry sweeper shutting down")
