"""bm_curve REST endpoints.

GET  /markets/{pool_address}/quote      — marginal prices and implied q
POST /markets/{pool_address}/estimate   — buy/sell size estimate
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.database import get_db_session
from src.bm_common.response import ApiResponse, success_response
from src.bm_curve.application.schemas import EstimateRequest
from src.bm_curve.application.service import QuoteService
from src.bm_gateway.middleware.rate_limit import enforce_quote_rate_limit

router = APIRouter(
    prefix="/markets",
    tags=["markets"],
    dependencies=[Depends(enforce_quote_rate_limit)],
)

_service = QuoteService()


@router.get("/{pool_address}/quote")
async def get_quote(
    pool_address: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.quote_price(db, pool_address)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{pool_address}/estimate")
async def estimate_trade(
    pool_address: str,
    body: EstimateRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.estimate_trade(db, pool_address, body)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
