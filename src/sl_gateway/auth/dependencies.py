"""FastAPI dependency resolving the caller's identity.

The identity provider issues the bearer tokens; this service has no login
route, so a plain HTTP bearer scheme is used. Usage:

    @router.get("/events")
    async def list_events(user_id: Annotated[str, Depends(get_current_user_id)]):
        ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.sl_common.database import get_db_session
from src.sl_common.errors import AccountDisabledError, InvalidCredentialsError
from src.sl_gateway.auth.jwt_handler import resolve_user_id
from src.sl_gateway.user.db_models import UserModel

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> str:
    """Return the id of the active user named by the bearer token.

    HTTP 401 when the token is missing, invalid, expired, or names no known
    user; AccountDisabledError (403) when the user is disabled.
    """
    if credentials is None:
        raise _unauthorized()
    try:
        user_id = resolve_user_id(credentials.credentials)
    except InvalidCredentialsError:
        raise _unauthorized() from None

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized()
    if not user.is_active:
        raise AccountDisabledError()
    return user.id
