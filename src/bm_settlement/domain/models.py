"""Domain models for bm_settlement — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class SettlementRecord:
    """Audit row for one (pool, epoch) settlement. Reserves in micro-USDC."""

    pool_address: str
    belief_id: str
    epoch: int
    bd_relevance_score: float
    market_prediction_q: float
    f_long: float
    f_short: float
    reserve_long_before: int
    reserve_short_before: int
    reserve_long_after: int
    reserve_short_after: int
    tx_signature: str | None
    confirmed: bool
    settled_at: datetime | None = None


@dataclass
class ReserveSplit:
    reserve_long: int
    reserve_short: int
