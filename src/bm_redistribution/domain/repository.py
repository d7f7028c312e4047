"""Repository protocol for stake mutation and redistribution events."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_redistribution.domain.models import RedistributionEvent


class RedistributionRepositoryProtocol(Protocol):
    async def has_events(self, db: AsyncSession, belief_id: str, epoch: int) -> bool: ...

    async def get_stake(self, db: AsyncSession, agent_id: str) -> int | None: ...

    async def adjust_stake(self, db: AsyncSession, agent_id: str, delta: int) -> int | None:
        """Atomic add floored at 0. Returns the new total, None if no agent."""
        ...

    async def insert_event(self, db: AsyncSession, event: RedistributionEvent) -> bool:
        """False when the (belief, epoch, agent) row already exists."""
        ...

    async def list_epoch_deltas(
        self, db: AsyncSession
    ) -> list[tuple[str, int, int]]:
        """(belief_id, epoch, net stake_delta) for every recorded round."""
        ...
