"""Domain models for bm_redistribution — pure dataclasses, no business logic."""

from dataclasses import dataclass, field


@dataclass
class RedistributionEvent:
    """Append-only audit row: one agent's stake change for one (belief, epoch)."""

    belief_id: str
    epoch: int
    agent_id: str
    information_score: float
    belief_weight: float
    normalized_weight: float
    stake_before: int
    stake_delta: int
    stake_after: int


@dataclass
class RedistributionPlan:
    """Zero-sum stake deltas for one round. All amounts in micro-USDC."""

    raw_deltas: dict[str, int]
    final_deltas: dict[str, int]
    lambda_scale: float
    total_slashed: int
    total_rewarded: int
    occurred: bool
    winners: list[str] = field(default_factory=list)
    losers: list[str] = field(default_factory=list)
