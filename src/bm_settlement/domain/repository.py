"""Repository protocol for settlement audit rows."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_settlement.domain.models import SettlementRecord


class SettlementRepositoryProtocol(Protocol):
    async def get_record(
        self, db: AsyncSession, pool_address: str, epoch: int
    ) -> SettlementRecord | None: ...

    async def get_last_confirmed_at(
        self, db: AsyncSession, pool_address: str, before_epoch: int
    ) -> datetime | None:
        """settled_at of the latest confirmed settlement with epoch < before_epoch."""
        ...

    async def save_record(self, db: AsyncSession, record: SettlementRecord) -> None:
        """Insert, or overwrite an unconfirmed row for the same (pool, epoch)."""
        ...
