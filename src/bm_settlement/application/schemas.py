"""Request/response schemas for settlement and epoch endpoints."""

from pydantic import BaseModel

from src.bm_common.enums import ScoreFormat, SettlementState
from src.bm_settlement.domain.models import SettlementRecord


class SettleResponse(BaseModel):
    pool_address: str
    belief_id: str
    epoch: int
    state: SettlementState
    settled: bool  # True only when this call moved the epoch to SETTLED
    skipped: bool  # True for an idempotent no-op
    tx_ref: str | None
    score: float
    score_fixed: int | None = None
    score_format: ScoreFormat | None = None
    market_prediction_q: float
    f_long: float
    f_short: float
    reserve_long: int
    reserve_short: int

    @classmethod
    def from_record(
        cls, record: SettlementRecord, *, settled: bool, skipped: bool, **extra: object
    ) -> "SettleResponse":
        return cls(
            pool_address=record.pool_address,
            belief_id=record.belief_id,
            epoch=record.epoch,
            state=SettlementState.SETTLED if record.confirmed else SettlementState.PENDING,
            settled=settled,
            skipped=skipped,
            tx_ref=record.tx_signature,
            score=record.bd_relevance_score,
            market_prediction_q=record.market_prediction_q,
            f_long=record.f_long,
            f_short=record.f_short,
            reserve_long=record.reserve_long_after,
            reserve_short=record.reserve_short_after,
            **extra,
        )


class ConfirmRequest(BaseModel):
    epoch: int | None = None  # defaults to the pool's current epoch


class EpochAdvanceResponse(BaseModel):
    epoch: int
