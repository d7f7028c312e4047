"""Zero-sum stake redistribution math.

raw_i   = floor(score_i * gross_lock_i)
losers  keep raw_i (they fund the pool)
winners get raw_i * lambda, lambda = total_losses / total_gains

Winner shares are apportioned in whole micro-USDC with the largest-remainder
method so that rewards equal slashes exactly.
"""

import logging
import math
from fractions import Fraction

from src.bm_common.errors import ConservationViolationError, InputValidationError
from src.bm_redistribution.domain.models import RedistributionPlan

logger = logging.getLogger(__name__)

ZERO_SUM_TOLERANCE = 1  # micro-USDC


def validate_scores(scores: dict[str, float]) -> None:
    if not scores:
        raise InputValidationError("information_scores must be non-empty")
    for agent_id, score in scores.items():
        if not math.isfinite(score) or not -1.0 <= score <= 1.0:
            raise InputValidationError(
                f"information score for {agent_id} outside [-1, 1]: {score}"
            )


def raw_delta(score: float, gross_lock: int) -> int:
    return math.floor(score * gross_lock)


def _apportion(raw_gains: dict[str, int], pool: int) -> dict[str, int]:
    """Split ``pool`` across winners in proportion to their raw gains."""
    total_gains = sum(raw_gains.values())
    quotas = {a: Fraction(g * pool, total_gains) for a, g in raw_gains.items()}
    shares = {a: math.floor(q) for a, q in quotas.items()}
    leftover = pool - sum(shares.values())
    by_remainder = sorted(quotas, key=lambda a: (-(quotas[a] - shares[a]), a))
    for agent_id in by_remainder[:leftover]:
        shares[agent_id] += 1
    return shares


def check_zero_sum(deltas: dict[str, int]) -> None:
    net = sum(deltas.values())
    if abs(net) > ZERO_SUM_TOLERANCE:
        logger.error(
            "Zero-sum violation: net=%d deltas=%s", net, dict(sorted(deltas.items()))
        )
        raise ConservationViolationError(net, dict(deltas))


def plan_redistribution(
    scores: dict[str, float], gross_locks: dict[str, int]
) -> RedistributionPlan:
    """Build the stake deltas for one round.

    Agents missing from ``gross_locks`` hold no open position and get raw 0.
    A one-sided round (only winners or only losers) moves no stake.
    """
    validate_scores(scores)

    raw = {a: raw_delta(s, gross_locks.get(a, 0)) for a, s in scores.items()}
    winners = sorted(a for a, d in raw.items() if d > 0)
    losers = sorted(a for a, d in raw.items() if d < 0)
    total_losses = sum(-raw[a] for a in losers)
    total_gains = sum(raw[a] for a in winners)

    if not winners or not losers:
        return RedistributionPlan(
            raw_deltas=raw,
            final_deltas={},
            lambda_scale=0.0,
            total_slashed=0,
            total_rewarded=0,
            occurred=False,
            winners=winners,
            losers=losers,
        )

    lambda_scale = total_losses / total_gains
    rewards = _apportion({a: raw[a] for a in winners}, total_losses)

    final: dict[str, int] = {a: raw[a] for a in losers}
    final.update(rewards)
    check_zero_sum(final)

    return RedistributionPlan(
        raw_deltas=raw,
        final_deltas={a: d for a, d in final.items() if d != 0},
        lambda_scale=lambda_scale,
        total_slashed=total_losses,
        total_rewarded=sum(rewards.values()),
        occurred=True,
        winners=winners,
        losers=losers,
    )
