"""Request/response schemas for the redistribution API."""

from pydantic import BaseModel, Field


class RedistributeRequest(BaseModel):
    belief_id: str = Field(min_length=1)
    epoch: int = Field(ge=0)
    information_scores: dict[str, float] = Field(min_length=1)


class RedistributeResponse(BaseModel):
    """Outcome of one (belief, epoch) round.

    A one-sided round (no winners or no losers) moves nothing and writes no
    events, so repeating it reports ``occurred=False, skipped=False`` again
    rather than ``skipped=True``. Both calls are no-ops.
    """

    belief_id: str
    epoch: int
    pool_address: str | None = None
    occurred: bool
    skipped: bool = False  # True when this (belief, epoch) was already processed
    lambda_scale: float = 0.0
    total_redistributed: int = 0  # micro-USDC moved from losers to winners
    total_redistributed_display: str = "$0.000000"
    rewards: dict[str, int] = Field(default_factory=dict)
    slashes: dict[str, int] = Field(default_factory=dict)  # positive magnitudes
