"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bm_common.fixed_point import as_display
from src.bm_market.domain.models import AgentLock, Belief, Pool

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_POOL_COLUMNS = """
    pool_address, belief_id, status,
    s_long, s_short,
    sqrt_price_long_x96, sqrt_price_short_x96,
    r_long, r_short, vault_balance,
    current_epoch, min_settle_interval, last_settle_ts
"""

_GET_POOL_SQL = text(f"SELECT {_POOL_COLUMNS} FROM pool_deployments WHERE pool_address = :pool_address")

_GET_POOL_FOR_UPDATE_SQL = text(
    f"SELECT {_POOL_COLUMNS} FROM pool_deployments WHERE pool_address = :pool_address FOR UPDATE"
)

_GET_POOL_FOR_BELIEF_SQL = text(f"SELECT {_POOL_COLUMNS} FROM pool_deployments WHERE belief_id = :belief_id")

_GET_BELIEF_SQL = text("""
    SELECT id, previous_aggregate, status, created_epoch, expiration_epoch
    FROM beliefs
    WHERE id = :belief_id
""")

# Gross lock across LONG and SHORT; a closed side (token_balance = 0) carries no lock
_OPEN_LOCKS_SQL = text("""
    SELECT agent_id,
           COALESCE(SUM(belief_lock) FILTER (WHERE token_balance > 0), 0) AS belief_lock,
           COALESCE(SUM(token_balance), 0) AS token_balance
    FROM user_pool_balances
    WHERE pool_address = :pool_address
      AND agent_id = ANY(:agent_ids)
    GROUP BY agent_id
""")

_APPLY_SETTLEMENT_SQL = text("""
    UPDATE pool_deployments
    SET r_long = :r_long,
        r_short = :r_short,
        last_settle_ts = NOW(),
        updated_at = NOW()
    WHERE pool_address = :pool_address
""")

_ADVANCE_GLOBAL_EPOCH_SQL = text("""
    UPDATE system_config
    SET value = (CAST(value AS INTEGER) + 1)::TEXT, updated_at = NOW()
    WHERE key = 'current_epoch'
    RETURNING CAST(value AS INTEGER) AS epoch
""")

_ADVANCE_POOL_EPOCH_SQL = text("""
    UPDATE pool_deployments
    SET current_epoch = :epoch, updated_at = NOW()
    WHERE status = 'market_deployed'
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_pool(row: object) -> Pool:
    return Pool(
        pool_address=row.pool_address,  # type: ignore[attr-defined]
        belief_id=str(row.belief_id),  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        s_long=as_display(float(row.s_long)),  # type: ignore[attr-defined]
        s_short=as_display(float(row.s_short)),  # type: ignore[attr-defined]
        sqrt_price_long_x96=int(row.sqrt_price_long_x96),  # type: ignore[attr-defined]
        sqrt_price_short_x96=int(row.sqrt_price_short_x96),  # type: ignore[attr-defined]
        r_long=int(row.r_long),  # type: ignore[attr-defined]
        r_short=int(row.r_short),  # type: ignore[attr-defined]
        vault_balance=int(row.vault_balance),  # type: ignore[attr-defined]
        current_epoch=row.current_epoch,  # type: ignore[attr-defined]
        min_settle_interval=(
            row.min_settle_interval  # type: ignore[attr-defined]
            if row.min_settle_interval is not None  # type: ignore[attr-defined]
            else settings.DEFAULT_MIN_SETTLE_INTERVAL
        ),
        last_settle_ts=row.last_settle_ts,  # type: ignore[attr-defined]
    )


def _row_to_belief(row: object) -> Belief:
    aggregate = row.previous_aggregate  # type: ignore[attr-defined]
    return Belief(
        id=str(row.id),  # type: ignore[attr-defined]
        previous_aggregate=float(aggregate) if aggregate is not None else None,
        status=row.status,  # type: ignore[attr-defined]
        created_epoch=row.created_epoch,  # type: ignore[attr-defined]
        expiration_epoch=row.expiration_epoch,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class MarketRepository:
    async def get_pool(self, db: AsyncSession, pool_address: str) -> Pool | None:
        row = (await db.execute(_GET_POOL_SQL, {"pool_address": pool_address})).fetchone()
        return _row_to_pool(row) if row else None

    async def get_pool_for_update(
        self, db: AsyncSession, pool_address: str
    ) -> Pool | None:
        row = (
            await db.execute(_GET_POOL_FOR_UPDATE_SQL, {"pool_address": pool_address})
        ).fetchone()
        return _row_to_pool(row) if row else None

    async def get_pool_for_belief(
        self, db: AsyncSession, belief_id: str
    ) -> Pool | None:
        row = (await db.execute(_GET_POOL_FOR_BELIEF_SQL, {"belief_id": belief_id})).fetchone()
        return _row_to_pool(row) if row else None

    async def get_belief(self, db: AsyncSession, belief_id: str) -> Belief | None:
        row = (await db.execute(_GET_BELIEF_SQL, {"belief_id": belief_id})).fetchone()
        return _row_to_belief(row) if row else None

    async def get_open_locks(
        self, db: AsyncSession, pool_address: str, agent_ids: list[str]
    ) -> dict[str, AgentLock]:
        rows = (
            await db.execute(
                _OPEN_LOCKS_SQL, {"pool_address": pool_address, "agent_ids": agent_ids}
            )
        ).fetchall()
        return {
            str(r.agent_id): AgentLock(
                agent_id=str(r.agent_id),
                belief_lock=int(r.belief_lock),
                token_balance=float(r.token_balance),
            )
            for r in rows
        }

    async def apply_settlement_reserves(
        self,
        db: AsyncSession,
        pool_address: str,
        r_long: int,
        r_short: int,
    ) -> None:
        await db.execute(
            _APPLY_SETTLEMENT_SQL,
            {"pool_address": pool_address, "r_long": r_long, "r_short": r_short},
        )

    async def advance_epoch(self, db: AsyncSession) -> int:
        """Bump the global epoch and move every deployed pool into it."""
        epoch = (await db.execute(_ADVANCE_GLOBAL_EPOCH_SQL)).scalar_one()
        await db.execute(_ADVANCE_POOL_EPOCH_SQL, {"epoch": epoch})
        return int(epoch)
