"""bm_weights REST endpoints.

POST /weights/calculate — normalized epistemic weights for a belief
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.database import get_db_session
from src.bm_common.response import ApiResponse, success_response
from src.bm_weights.application.schemas import WeightsRequest
from src.bm_weights.application.service import WeightsService

router = APIRouter(prefix="/weights", tags=["weights"])

_service = WeightsService()


@router.post("/calculate")
async def calculate_weights(
    body: WeightsRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.compute_weights(db, body.belief_id, body.participant_agents)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
