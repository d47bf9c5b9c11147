"""Ledger entries REST API — read, administrative edit, delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.response import ApiResponse, success_response
from src.sl_gateway.auth.dependencies import get_current_user_id
from src.sl_ledger.application.schemas import EditEntryRequest
from src.sl_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/entries", tags=["entries"])

_service = LedgerApplicationService()


@router.get("/{entry_id}")
async def get_entry(
    entry_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_entry(db, entry_id)
    return success_response(data.model_dump(), request=request)


@router.patch("/{entry_id}")
async def edit_entry(
    entry_id: str,
    body: EditEntryRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.edit_entry(
        db,
        entry_id,
        body.expected_version,
        obligation_cents=body.obligation_cents(),
        included=body.included,
    )
    return success_response(data.model_dump(), request=request)


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_entry(db, entry_id)
    return success_response({"entry_id": entry_id, "deleted": True}, request=request)
