"""bm_redistribution REST endpoints.

POST /redistributions — zero-sum stake redistribution for one (belief, epoch)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.database import get_db_session
from src.bm_common.response import ApiResponse, success_response
from src.bm_redistribution.application.schemas import RedistributeRequest
from src.bm_redistribution.application.service import RedistributionService

router = APIRouter(prefix="/redistributions", tags=["redistribution"])

_service = RedistributionService()


@router.post("")
async def redistribute(
    body: RedistributeRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.redistribute(db, body)
    message = "already redistributed" if result.skipped else "success"
    resp = success_response(result.model_dump(), message=message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
