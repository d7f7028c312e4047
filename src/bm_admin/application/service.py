"""AdminService — read-only audit of economic invariants.

Checks:
  reserves: a pool untouched since its last confirmed settlement holds
            r_long + r_short == vault_balance
  zero-sum: every recorded redistribution round nets to |Σ delta| <= 1
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_redistribution.domain.calculator import ZERO_SUM_TOLERANCE
from src.bm_redistribution.domain.repository import RedistributionRepositoryProtocol
from src.bm_redistribution.infrastructure.persistence import RedistributionRepository

logger = logging.getLogger(__name__)

# Reserves still equal to the latest confirmed split, i.e. no trade since settlement
_SETTLED_POOLS_SQL = text("""
    SELECT p.pool_address, p.r_long, p.r_short, p.vault_balance, s.epoch
    FROM pool_deployments p
    JOIN LATERAL (
        SELECT epoch, reserve_long_after, reserve_short_after
        FROM settlements
        WHERE pool_address = p.pool_address AND confirmed = TRUE
        ORDER BY epoch DESC
        LIMIT 1
    ) s ON TRUE
    WHERE p.r_long = s.reserve_long_after
      AND p.r_short = s.reserve_short_after
""")


class AdminService:
    def __init__(self, redistribution_repo: RedistributionRepositoryProtocol | None = None) -> None:
        self._redistribution_repo: RedistributionRepositoryProtocol = (
            redistribution_repo or RedistributionRepository()
        )

    async def _verify_settled_reserves(self, db: AsyncSession) -> list[str]:
        violations: list[str] = []
        rows = (await db.execute(_SETTLED_POOLS_SQL)).fetchall()
        for row in rows:
            total = int(row.r_long) + int(row.r_short)
            if total != int(row.vault_balance):
                msg = (
                    f"Reserve split mismatch: pool={row.pool_address} epoch={row.epoch} "
                    f"r_long({row.r_long}) + r_short({row.r_short}) = {total} "
                    f"!= vault_balance={row.vault_balance}"
                )
                violations.append(msg)
                logger.error(msg)
        return violations

    async def _verify_zero_sum(self, db: AsyncSession) -> list[str]:
        violations: list[str] = []
        for belief_id, epoch, net in await self._redistribution_repo.list_epoch_deltas(db):
            if abs(net) > ZERO_SUM_TOLERANCE:
                msg = f"Zero-sum violated: belief={belief_id} epoch={epoch} net delta={net}"
                violations.append(msg)
                logger.error(msg)
        return violations

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        violations = await self._verify_settled_reserves(db)
        violations.extend(await self._verify_zero_sum(db))
        return {"ok": len(violations) == 0, "violations": violations}
