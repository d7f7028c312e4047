"""QuoteService — synchronous pricing surface over stored pool state.

Read-only: no commit/rollback needed.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.enums import TokenSide
from src.bm_common.errors import MarketNotFoundError
from src.bm_curve.application.schemas import (
    EstimateRequest,
    EstimateResponse,
    QuoteResponse,
)
from src.bm_curve.domain.bonding_curve import calculate_price, quote
from src.bm_curve.domain.trade_estimator import estimate_tokens_out, estimate_usdc_out
from src.bm_market.domain.models import Pool
from src.bm_market.domain.repository import MarketRepositoryProtocol
from src.bm_market.infrastructure.persistence import MarketRepository


def _own_other(pool: Pool, side: TokenSide) -> tuple[float, float]:
    if side == TokenSide.LONG:
        return pool.s_long, pool.s_short
    return pool.s_short, pool.s_long


class QuoteService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def _load(self, db: AsyncSession, pool_address: str) -> Pool:
        pool = await self._repo.get_pool(db, pool_address)
        if pool is None:
            raise MarketNotFoundError(pool_address)
        return pool

    async def quote_price(self, db: AsyncSession, pool_address: str) -> QuoteResponse:
        pool = await self._load(db, pool_address)
        return QuoteResponse.from_quote(pool, quote(pool.s_long, pool.s_short))

    async def estimate_trade(
        self, db: AsyncSession, pool_address: str, req: EstimateRequest
    ) -> EstimateResponse:
        pool = await self._load(db, pool_address)
        own, other = _own_other(pool, req.side)

        if req.direction == "BUY":
            amount_out = estimate_tokens_out(own, other, req.amount, req.side)
            own_after = own + amount_out
        else:
            amount_out = estimate_usdc_out(own, other, req.amount, req.side)
            own_after = max(0.0, own - req.amount)

        def _price(own_supply: float) -> float:
            if req.side == TokenSide.LONG:
                return calculate_price(own_supply, other, req.side)
            return calculate_price(other, own_supply, req.side)

        return EstimateResponse(
            pool_address=pool_address,
            side=req.side,
            direction=req.direction,
            amount_in=req.amount,
            amount_out=amount_out,
            price_before=_price(own),
            price_after=_price(own_after),
        )
