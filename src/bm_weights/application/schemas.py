"""Request/response schemas for the weights API."""

from pydantic import BaseModel, Field


class WeightsRequest(BaseModel):
    belief_id: str = Field(min_length=1)
    participant_agents: list[str] = Field(min_length=1)


class WeightsResponse(BaseModel):
    belief_id: str
    pool_address: str
    weights: dict[str, float]
    belief_weights: dict[str, float]  # raw w_i, un-normalized
