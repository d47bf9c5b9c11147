"""sl_ledger events REST API — 7 endpoints, all require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.response import ApiResponse, success_response
from src.sl_gateway.auth.dependencies import get_current_user_id
from src.sl_ledger.application.schemas import (
    AddParticipantRequest,
    CreateEventRequest,
    RenameEventRequest,
)
from src.sl_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/events", tags=["events"])

_service = LedgerApplicationService()


@router.post("", status_code=201)
async def create_event(
    body: CreateEventRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_event(
        db, user_id, body.title, body.total_cents(), body.participant_ids
    )
    return success_response(data.model_dump(), request=request)


@router.get("")
async def list_events(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_events(db, user_id)
    return success_response(data.model_dump(), request=request)


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_event(db, event_id)
    return success_response(data.model_dump(), request=request)


@router.patch("/{event_id}")
async def rename_event(
    event_id: str,
    body: RenameEventRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.rename_event(db, event_id, body.title)
    return success_response(data.model_dump(), request=request)


@router.post("/{event_id}/entries", status_code=201)
async def add_participant(
    event_id: str,
    body: AddParticipantRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.add_participant(
        db, event_id, body.user_id, body.obligation_cents()
    )
    return success_response(data.model_dump(), request=request)


@router.post("/{event_id}/cancel")
async def cancel_event(
    event_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel_event(db, event_id)
    return success_response(data.model_dump(), request=request)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_event(db, event_id)
    return success_response({"event_id": event_id, "deleted": True}, request=request)
