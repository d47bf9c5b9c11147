"""Response envelope shared by every route and error path.

    {"code": 0, "message": "success", "data": {...},
     "timestamp": "2026-03-01T12:00:00+00:00", "request_id": "req_1a2b3c4d5e6f"}

code is 0 on success and the AppError code otherwise; data is null on error.
request_id is taken from request.state (set by RequestLogMiddleware) when a
request is given, so the body and the X-Request-ID header agree.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from src.sl_common.errors import AppError


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def _request_id(request: Request | None) -> str:
    if request is None:
        return new_request_id()
    return getattr(request.state, "request_id", None) or new_request_id()


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(
    data: Any = None, message: str = "success", request: Request | None = None
) -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data, request_id=_request_id(request))


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None, request_id=_request_id(request))


def error_json(
    exc: AppError,
    request: Request | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render an AppError as the envelope with its HTTP status."""
    return JSONResponse(
        status_code=exc.http_status,
        content=error_response(exc.code, exc.message, request).model_dump(),
        headers=headers,
    )
