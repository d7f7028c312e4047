"""Epistemic weights — each participant's influence on a belief.

Raw weight w_i is the agent's belief lock in the belief's pool (micro-USDC),
floored at EPSILON_STAKES. Normalized weight is w_i / Σ w_j. When nobody holds
an open position every raw weight sits on the floor; agents then get equal
weight 1/N instead of an epsilon-dominated split.
"""

import logging
import math
from dataclasses import dataclass

from src.bm_common.errors import InputValidationError, NormalizationError

logger = logging.getLogger(__name__)

EPSILON_STAKES = 1e-8
EPSILON_PROBABILITY = 1e-10


@dataclass
class WeightResult:
    weights: dict[str, float]
    raw_weights: dict[str, float]


def compute_weights(raw_locks: dict[str, float]) -> WeightResult:
    """Normalize belief locks into weights summing to 1.

    ``raw_locks`` maps agent_id -> belief lock; 0 for an agent with no open
    position. Order of the returned dicts follows ``raw_locks``.
    """
    if not raw_locks:
        raise InputValidationError("participant_agents must be non-empty")

    raw_weights: dict[str, float] = {}
    for agent_id, lock in raw_locks.items():
        if lock < 0:
            raise InputValidationError(f"belief lock for {agent_id} is negative: {lock}")
        raw_weights[agent_id] = max(float(lock), EPSILON_STAKES)

    total = sum(raw_weights.values())
    all_on_floor = all(w <= EPSILON_STAKES for w in raw_weights.values())

    if all_on_floor:
        logger.warning(
            "All %d agents have zero belief weight, using equal weights", len(raw_weights)
        )
        equal = 1.0 / len(raw_weights)
        weights = {agent_id: equal for agent_id in raw_weights}
    else:
        weights = {agent_id: w / total for agent_id, w in raw_weights.items()}

    weights_sum = sum(weights.values())
    if not math.isfinite(weights_sum) or abs(weights_sum - 1.0) > EPSILON_PROBABILITY:
        logger.error("Normalization failure: weights sum to %r", weights_sum)
        raise NormalizationError(weights_sum)

    return WeightResult(weights=weights, raw_weights=raw_weights)
