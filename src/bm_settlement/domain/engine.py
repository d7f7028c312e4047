"""Settlement rules for one (pool, epoch).

Preconditions run in a fixed order: ground-truth score, cooldown, then
already-settled. Everything here is pure; the service feeds in stored state.
"""

from dataclasses import dataclass
from datetime import datetime

from src.bm_common.datetime_utils import seconds_between
from src.bm_common.enums import ScoreFormat, SettlementState
from src.bm_common.errors import (
    CooldownActiveError,
    InputValidationError,
    NoGroundTruthScoreError,
)
from src.bm_common.fixed_point import (
    MILLIONTHS_ONE,
    as_micro_usdc,
    mul_div,
    score_to_millionths,
    score_to_q32,
)
from src.bm_settlement.domain.models import ReserveSplit, SettlementRecord

# q is clamped away from 0 and 1 so both factors stay finite
Q_MIN_MILLIONTHS = 1_000
Q_MAX_MILLIONTHS = 999_000


@dataclass
class PreconditionResult:
    state: SettlementState
    score: float
    existing: SettlementRecord | None = None


def check_preconditions(
    *,
    belief_id: str,
    pool_address: str,
    score: float | None,
    min_settle_interval: int,
    last_confirmed_at: datetime | None,
    existing: SettlementRecord | None,
    now: datetime,
) -> PreconditionResult:
    """Evaluate settlement preconditions for the pool's current epoch.

    Returns SETTLED for an already-confirmed epoch (caller treats as no-op),
    PENDING when a submission is awaiting confirmation, UNSETTLED otherwise.
    """
    if score is None:
        raise NoGroundTruthScoreError(belief_id)
    if not 0.0 <= score <= 1.0:
        raise InputValidationError(f"ground-truth score {score} outside [0, 1]")

    if last_confirmed_at is not None:
        elapsed = seconds_between(last_confirmed_at, now)
        if elapsed < min_settle_interval:
            remaining = min_settle_interval - elapsed
            raise CooldownActiveError(pool_address, remaining)

    if existing is not None:
        state = SettlementState.SETTLED if existing.confirmed else SettlementState.PENDING
        return PreconditionResult(state=state, score=score, existing=existing)

    return PreconditionResult(state=SettlementState.UNSETTLED, score=score)


def convert_score(score: float, fmt: ScoreFormat) -> int:
    if fmt == ScoreFormat.Q32:
        return score_to_q32(score)
    return score_to_millionths(score)


def split_reserves(vault_balance: int, score: float) -> ReserveSplit:
    """Post-settlement reserves: the implied probability resets to the score.

    Integer split, so reserve_long + reserve_short == vault_balance always.
    """
    vault = as_micro_usdc(vault_balance)
    reserve_long = mul_div(vault, score_to_millionths(score), MILLIONTHS_ONE)
    return ReserveSplit(reserve_long=reserve_long, reserve_short=vault - reserve_long)


def reserve_prediction(r_long: int, r_short: int) -> float:
    """q = R_long / (R_long + R_short); 0.5 for an empty pool."""
    total = r_long + r_short
    if total <= 0:
        return 0.5
    return r_long / total


def settlement_factors(q: float, score: float) -> tuple[float, float]:
    """(f_long, f_short) = (x / q, (1 - x) / (1 - q)) with q clamped."""
    q_clamped = min(max(q, Q_MIN_MILLIONTHS / MILLIONTHS_ONE), Q_MAX_MILLIONTHS / MILLIONTHS_ONE)
    return score / q_clamped, (1.0 - score) / (1.0 - q_clamped)
