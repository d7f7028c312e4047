"""bm_settlement REST endpoints.

POST /settlements/{pool_address}           — settle the pool's current epoch
POST /settlements/{pool_address}/confirm   — poll a pending settlement
POST /epochs/advance                       — epoch driver: bump the global epoch
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bm_common.database import get_db_session
from src.bm_common.response import ApiResponse, success_response
from src.bm_settlement.application.schemas import ConfirmRequest
from src.bm_settlement.application.service import SettlementService

router = APIRouter(tags=["settlement"])

_service = SettlementService()


@router.post("/settlements/{pool_address}")
async def settle_epoch(
    pool_address: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.settle_epoch(db, pool_address)
    message = "already settled" if result.skipped else "settled"
    resp = success_response(result.model_dump(mode="json"), message=message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/settlements/{pool_address}/confirm")
async def confirm_settlement(
    pool_address: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    body: ConfirmRequest | None = None,
) -> ApiResponse:
    epoch = body.epoch if body else None
    result = await _service.confirm_settlement(db, pool_address, epoch)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/epochs/advance")
async def advance_epoch(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.advance_epoch(db)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
