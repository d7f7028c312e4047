"""SettlementRepository — raw SQL against the settlements table."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_settlement.domain.models import SettlementRecord

_GET_RECORD_SQL = text("""
    SELECT pool_address, belief_id, epoch, bd_relevance_score, market_prediction_q,
           f_long, f_short,
           reserve_long_before, reserve_short_before,
           reserve_long_after, reserve_short_after,
           tx_signature, confirmed, settled_at
    FROM settlements
    WHERE pool_address = :pool_address AND epoch = :epoch
""")

_LAST_CONFIRMED_SQL = text("""
    SELECT MAX(settled_at) AS settled_at
    FROM settlements
    WHERE pool_address = :pool_address
      AND epoch < :before_epoch
      AND confirmed = TRUE
""")

# A confirmed row is never overwritten
_UPSERT_SQL = text("""
    INSERT INTO settlements (
        pool_address, belief_id, epoch, bd_relevance_score, market_prediction_q,
        f_long, f_short,
        reserve_long_before, reserve_short_before,
        reserve_long_after, reserve_short_after,
        tx_signature, confirmed, settled_at
    ) VALUES (
        :pool_address, :belief_id, :epoch, :bd_relevance_score, :market_prediction_q,
        :f_long, :f_short,
        :reserve_long_before, :reserve_short_before,
        :reserve_long_after, :reserve_short_after,
        :tx_signature, :confirmed, NOW()
    )
    ON CONFLICT (pool_address, epoch) DO UPDATE SET
        tx_signature = COALESCE(EXCLUDED.tx_signature, settlements.tx_signature),
        confirmed = EXCLUDED.confirmed,
        reserve_long_after = EXCLUDED.reserve_long_after,
        reserve_short_after = EXCLUDED.reserve_short_after,
        settled_at = NOW()
    WHERE settlements.confirmed = FALSE
""")


def _row_to_record(r: object) -> SettlementRecord:
    return SettlementRecord(
        pool_address=r.pool_address,  # type: ignore[attr-defined]
        belief_id=str(r.belief_id),  # type: ignore[attr-defined]
        epoch=r.epoch,  # type: ignore[attr-defined]
        bd_relevance_score=float(r.bd_relevance_score),  # type: ignore[attr-defined]
        market_prediction_q=float(r.market_prediction_q),  # type: ignore[attr-defined]
        f_long=float(r.f_long),  # type: ignore[attr-defined]
        f_short=float(r.f_short),  # type: ignore[attr-defined]
        reserve_long_before=int(r.reserve_long_before),  # type: ignore[attr-defined]
        reserve_short_before=int(r.reserve_short_before),  # type: ignore[attr-defined]
        reserve_long_after=int(r.reserve_long_after),  # type: ignore[attr-defined]
        reserve_short_after=int(r.reserve_short_after),  # type: ignore[attr-defined]
        tx_signature=r.tx_signature,  # type: ignore[attr-defined]
        confirmed=bool(r.confirmed),  # type: ignore[attr-defined]
        settled_at=r.settled_at,  # type: ignore[attr-defined]
    )


class SettlementRepository:
    async def get_record(
        self, db: AsyncSession, pool_address: str, epoch: int
    ) -> SettlementRecord | None:
        row = (
            await db.execute(_GET_RECORD_SQL, {"pool_address": pool_address, "epoch": epoch})
        ).fetchone()
        return _row_to_record(row) if row else None

    async def get_last_confirmed_at(
        self, db: AsyncSession, pool_address: str, before_epoch: int
    ) -> datetime | None:
        return (
            await db.execute(
                _LAST_CONFIRMED_SQL,
                {"pool_address": pool_address, "before_epoch": before_epoch},
            )
        ).scalar_one_or_none()

    async def save_record(self, db: AsyncSession, record: SettlementRecord) -> None:
        await db.execute(
            _UPSERT_SQL,
            {
                "pool_address": record.pool_address,
                "belief_id": record.belief_id,
                "epoch": record.epoch,
                "bd_relevance_score": record.bd_relevance_score,
                "market_prediction_q": record.market_prediction_q,
                "f_long": record.f_long,
                "f_short": record.f_short,
                "reserve_long_before": record.reserve_long_before,
                "reserve_short_before": record.reserve_short_before,
                "reserve_long_after": record.reserve_long_after,
                "reserve_short_after": record.reserve_short_after,
                "tx_signature": record.tx_signature,
                "confirmed": record.confirmed,
            },
        )

