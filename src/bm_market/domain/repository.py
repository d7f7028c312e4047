"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_market.domain.models import AgentLock, Belief, Pool


class MarketRepositoryProtocol(Protocol):
    async def get_pool(self, db: AsyncSession, pool_address: str) -> Pool | None: ...

    async def get_pool_for_update(
        self, db: AsyncSession, pool_address: str
    ) -> Pool | None: ...

    async def get_pool_for_belief(
        self, db: AsyncSession, belief_id: str
    ) -> Pool | None: ...

    async def get_belief(self, db: AsyncSession, belief_id: str) -> Belief | None: ...

    async def get_open_locks(
        self, db: AsyncSession, pool_address: str, agent_ids: list[str]
    ) -> dict[str, AgentLock]: ...

    async def apply_settlement_reserves(
        self,
        db: AsyncSession,
        pool_address: str,
        r_long: int,
        r_short: int,
    ) -> None: ...

    async def advance_epoch(self, db: AsyncSession) -> int: ...
