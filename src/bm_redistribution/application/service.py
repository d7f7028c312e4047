"""RedistributionService — moves stake from inaccurate to accurate agents.

One call is one transaction: the market's advisory lock, the idempotency
check, every stake leg and every audit row commit or roll back together.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.errors import (
    AgentNotFoundError,
    BeliefNotFoundError,
    InputValidationError,
    PoolNotFoundForBeliefError,
    StakeVerificationError,
)
from src.bm_common.fixed_point import micro_to_display
from src.bm_market.domain.repository import MarketRepositoryProtocol
from src.bm_market.infrastructure.persistence import MarketRepository
from src.bm_redistribution.application.schemas import RedistributeRequest, RedistributeResponse
from src.bm_redistribution.domain.calculator import plan_redistribution, validate_scores
from src.bm_redistribution.domain.locking import market_lock
from src.bm_redistribution.domain.models import RedistributionEvent, RedistributionPlan
from src.bm_redistribution.domain.repository import RedistributionRepositoryProtocol
from src.bm_redistribution.infrastructure.persistence import RedistributionRepository
from src.bm_weights.domain.calculator import compute_weights

logger = logging.getLogger(__name__)


class RedistributionService:
    def __init__(
        self,
        repo: RedistributionRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
    ) -> None:
        self._repo: RedistributionRepositoryProtocol = repo or RedistributionRepository()
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()

    async def redistribute(
        self, db: AsyncSession, req: RedistributeRequest
    ) -> RedistributeResponse:
        if req.epoch < 0:
            raise InputValidationError(f"epoch must be >= 0, got {req.epoch}")
        validate_scores(req.information_scores)

        try:
            result = await self._redistribute_inner(db, req)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return result

    async def _redistribute_inner(
        self, db: AsyncSession, req: RedistributeRequest
    ) -> RedistributeResponse:
        belief = await self._market_repo.get_belief(db, req.belief_id)
        if belief is None:
            raise BeliefNotFoundError(req.belief_id)
        pool = await self._market_repo.get_pool_for_belief(db, req.belief_id)
        if pool is None:
            raise PoolNotFoundForBeliefError(req.belief_id)

        async with market_lock(db, pool.pool_address):
            if await self._repo.has_events(db, req.belief_id, req.epoch):
                logger.info(
                    "Redistribution idempotency hit: belief=%s epoch=%d",
                    req.belief_id, req.epoch,
                )
                return RedistributeResponse(
                    belief_id=req.belief_id,
                    epoch=req.epoch,
                    pool_address=pool.pool_address,
                    occurred=False,
                    skipped=True,
                )

            agent_ids = list(req.information_scores)
            locks = await self._market_repo.get_open_locks(db, pool.pool_address, agent_ids)
            gross = {a: locks[a].belief_lock if a in locks else 0 for a in agent_ids}

            plan = plan_redistribution(req.information_scores, gross)
            if not plan.occurred:
                logger.info(
                    "No redistribution: belief=%s epoch=%d winners=%d losers=%d",
                    req.belief_id, req.epoch, len(plan.winners), len(plan.losers),
                )
                return RedistributeResponse(
                    belief_id=req.belief_id,
                    epoch=req.epoch,
                    pool_address=pool.pool_address,
                    occurred=False,
                )

            await self._apply(db, req, plan, gross)

        logger.info(
            "Redistributed belief=%s epoch=%d lambda=%.6f moved=%d agents=%d",
            req.belief_id, req.epoch, plan.lambda_scale,
            plan.total_slashed, len(plan.final_deltas),
        )
        return RedistributeResponse(
            belief_id=req.belief_id,
            epoch=req.epoch,
            pool_address=pool.pool_address,
            occurred=True,
            lambda_scale=plan.lambda_scale,
            total_redistributed=plan.total_slashed,
            total_redistributed_display=micro_to_display(plan.total_slashed),
            rewards={a: d for a, d in plan.final_deltas.items() if d > 0},
            slashes={a: -d for a, d in plan.final_deltas.items() if d < 0},
        )

    async def _apply(
        self,
        db: AsyncSession,
        req: RedistributeRequest,
        plan: RedistributionPlan,
        gross: dict[str, int],
    ) -> None:
        weights = compute_weights(gross)
        for agent_id in sorted(plan.final_deltas):
            delta = plan.final_deltas[agent_id]
            before = await self._repo.get_stake(db, agent_id)
            if before is None:
                raise AgentNotFoundError(agent_id)
            after = await self._repo.adjust_stake(db, agent_id, delta)
            if after is None:
                raise AgentNotFoundError(agent_id)
            expected = max(0, before + delta)
            if after != expected:
                logger.error(
                    "Stake verification failed: agent=%s before=%d delta=%d after=%d",
                    agent_id, before, delta, after,
                )
                raise StakeVerificationError(agent_id, expected, after)

            await self._repo.insert_event(
                db,
                RedistributionEvent(
                    belief_id=req.belief_id,
                    epoch=req.epoch,
                    agent_id=agent_id,
                    information_score=req.information_scores[agent_id],
                    belief_weight=weights.raw_weights[agent_id],
                    normalized_weight=weights.weights[agent_id],
                    stake_before=before,
                    stake_delta=delta,
                    stake_after=after,
                ),
            )
