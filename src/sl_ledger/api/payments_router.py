"""Payments and per-user aggregates REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.response import ApiResponse, success_response
from src.sl_gateway.auth.dependencies import get_current_user_id
from src.sl_ledger.application.schemas import PaymentRequest
from src.sl_ledger.application.service import LedgerApplicationService

router = APIRouter(tags=["payments"])

_service = LedgerApplicationService()


@router.post("/payments", status_code=201)
async def record_payment(
    body: PaymentRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_payment(
        db, body.entry_id, user_id, body.amount_cents(), body.expected_version
    )
    return success_response(data.model_dump(), request=request)


@router.get("/users/me/aggregate")
async def get_my_aggregate(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    # The authenticated user is known to exist
    data = await _service.get_user_aggregate(db, user_id, check_user=False)
    return success_response(data.model_dump(), request=request)


@router.get("/users/{target_user_id}/aggregate")
async def get_user_aggregate(
    target_user_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_user_aggregate(db, target_user_id)
    return success_response(data.model_dump(), request=request)
