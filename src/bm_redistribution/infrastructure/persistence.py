"""RedistributionRepository — raw SQL for agents.total_stake and audit events."""

import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_redistribution.domain.models import RedistributionEvent

logger = logging.getLogger(__name__)

_HAS_EVENTS_SQL = text("""
    SELECT EXISTS (
        SELECT 1 FROM stake_redistribution_events
        WHERE belief_id = :belief_id AND epoch = :epoch
    )
""")

_GET_STAKE_SQL = text("SELECT total_stake FROM agents WHERE id = :agent_id")

# Single-statement increment; concurrent rounds on other markets may touch the same agent
_ADJUST_STAKE_SQL = text("""
    UPDATE agents
    SET total_stake = GREATEST(0, total_stake + :delta), updated_at = NOW()
    WHERE id = :agent_id
    RETURNING total_stake
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO stake_redistribution_events (
        belief_id, epoch, agent_id, information_score,
        belief_weight, normalized_weight,
        stake_before, stake_delta, stake_after
    ) VALUES (
        :belief_id, :epoch, :agent_id, :information_score,
        :belief_weight, :normalized_weight,
        :stake_before, :stake_delta, :stake_after
    )
""")

_EPOCH_DELTAS_SQL = text("""
    SELECT belief_id, epoch, SUM(stake_delta) AS net_delta
    FROM stake_redistribution_events
    GROUP BY belief_id, epoch
    ORDER BY belief_id, epoch
""")


class RedistributionRepository:
    async def has_events(self, db: AsyncSession, belief_id: str, epoch: int) -> bool:
        result = await db.execute(_HAS_EVENTS_SQL, {"belief_id": belief_id, "epoch": epoch})
        return bool(result.scalar_one())

    async def get_stake(self, db: AsyncSession, agent_id: str) -> int | None:
        value = (await db.execute(_GET_STAKE_SQL, {"agent_id": agent_id})).scalar_one_or_none()
        return int(value) if value is not None else None

    async def adjust_stake(self, db: AsyncSession, agent_id: str, delta: int) -> int | None:
        value = (
            await db.execute(_ADJUST_STAKE_SQL, {"agent_id": agent_id, "delta": delta})
        ).scalar_one_or_none()
        return int(value) if value is not None else None

    async def insert_event(self, db: AsyncSession, event: RedistributionEvent) -> bool:
        try:
            async with db.begin_nested():
                await db.execute(
                    _INSERT_EVENT_SQL,
                    {
                        "belief_id": event.belief_id,
                        "epoch": event.epoch,
                        "agent_id": event.agent_id,
                        "information_score": event.information_score,
                        "belief_weight": event.belief_weight,
                        "normalized_weight": event.normalized_weight,
                        "stake_before": event.stake_before,
                        "stake_delta": event.stake_delta,
                        "stake_after": event.stake_after,
                    },
                )
        except IntegrityError:
            logger.info(
                "Redistribution event already recorded: belief=%s epoch=%d agent=%s",
                event.belief_id, event.epoch, event.agent_id,
            )
            return False
        return True

    async def list_epoch_deltas(self, db: AsyncSession) -> list[tuple[str, int, int]]:
        rows = (await db.execute(_EPOCH_DELTAS_SQL)).fetchall()
        return [(str(r.belief_id), int(r.epoch), int(r.net_delta)) for r in rows]
