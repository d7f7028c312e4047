"""Pydantic schemas for bm_curve quote/estimate APIs."""

from typing import Literal

from pydantic import BaseModel, Field

from src.bm_common.enums import TokenSide
from src.bm_common.fixed_point import is_valid_sqrt_price, sqrt_price_x96_to_price
from src.bm_curve.domain.models import PriceQuote
from src.bm_market.domain.models import Pool


def _ledger_price(sqrt_price_x96: int) -> float | None:
    if not is_valid_sqrt_price(sqrt_price_x96):
        return None
    return sqrt_price_x96_to_price(sqrt_price_x96)


class QuoteResponse(BaseModel):
    pool_address: str
    supply_long: float
    supply_short: float
    price_long: float
    price_short: float
    market_prediction: float
    # Last prices written by the ledger; None until the pool has traded
    ledger_price_long: float | None = None
    ledger_price_short: float | None = None

    @classmethod
    def from_quote(cls, pool: Pool, q: PriceQuote) -> "QuoteResponse":
        return cls(
            pool_address=pool.pool_address,
            supply_long=pool.s_long,
            supply_short=pool.s_short,
            price_long=q.price_long,
            price_short=q.price_short,
            market_prediction=q.market_prediction,
            ledger_price_long=_ledger_price(pool.sqrt_price_long_x96),
            ledger_price_short=_ledger_price(pool.sqrt_price_short_x96),
        )


class EstimateRequest(BaseModel):
    side: TokenSide
    direction: Literal["BUY", "SELL"]
    amount: float = Field(
        gt=0,
        allow_inf_nan=False,
        description="USDC to spend (BUY) or tokens to sell (SELL)",
    )


class EstimateResponse(BaseModel):
    pool_address: str
    side: TokenSide
    direction: str
    amount_in: float
    amount_out: float
    price_before: float
    price_after: float
