"""Per-market mutual exclusion via Postgres advisory locks."""

import hashlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_XACT_LOCK_SQL = text("SELECT pg_advisory_xact_lock(:key)")


def lock_key(pool_address: str) -> int:
    """Stable signed 64-bit key: first 16 hex chars of SHA-256(address)."""
    digest = hashlib.sha256(pool_address.encode("utf-8")).hexdigest()
    return int.from_bytes(bytes.fromhex(digest[:16]), "big", signed=True)


@asynccontextmanager
async def market_lock(db: AsyncSession, pool_address: str) -> AsyncIterator[int]:
    """Hold the market's advisory lock until the enclosing transaction ends.

    Transaction-scoped: COMMIT or ROLLBACK releases it, so idempotency rows
    written under the lock are visible before the next holder reads them.
    """
    key = lock_key(pool_address)
    await db.execute(_XACT_LOCK_SQL, {"key": key})
    logger.debug("Advisory lock acquired: pool=%s key=%d", pool_address, key)
    yield key
