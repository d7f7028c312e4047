"""WeightsService — loads belief locks for a belief's pool and normalizes them."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.errors import InputValidationError, PoolNotFoundForBeliefError
from src.bm_market.domain.repository import MarketRepositoryProtocol
from src.bm_market.infrastructure.persistence import MarketRepository
from src.bm_weights.application.schemas import WeightsResponse
from src.bm_weights.domain.calculator import WeightResult, compute_weights

logger = logging.getLogger(__name__)


class WeightsService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def compute_for_pool(
        self, db: AsyncSession, pool_address: str, agent_ids: list[str]
    ) -> WeightResult:
        """Weights for agents in a known pool. Agents without a row get w_i = 0."""
        if not agent_ids:
            raise InputValidationError("participant_agents must be non-empty")
        unique_ids = list(dict.fromkeys(agent_ids))
        locks = await self._repo.get_open_locks(db, pool_address, unique_ids)
        raw = {
            agent_id: (locks[agent_id].belief_lock if agent_id in locks else 0)
            for agent_id in unique_ids
        }
        return compute_weights(raw)

    async def compute_weights(
        self, db: AsyncSession, belief_id: str, agent_ids: list[str]
    ) -> WeightsResponse:
        pool = await self._repo.get_pool_for_belief(db, belief_id)
        if pool is None:
            raise PoolNotFoundForBeliefError(belief_id)

        result = await self.compute_for_pool(db, pool.pool_address, agent_ids)
        logger.info(
            "Weights computed: belief=%s pool=%s participants=%d",
            belief_id, pool.pool_address, len(result.weights),
        )
        return WeightsResponse(
            belief_id=belief_id,
            pool_address=pool.pool_address,
            weights=result.weights,
            belief_weights=result.raw_weights,
        )
