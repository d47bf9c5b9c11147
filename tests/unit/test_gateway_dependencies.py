"""Tests for get_current_user_id — bearer token to active user id."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from src.sl_common.errors import AccountDisabledError
from src.sl_gateway.auth.dependencies import get_current_user_id
from src.sl_gateway.auth.jwt_handler import create_access_token
from src.sl_gateway.user.db_models import UserModel


def _db_with_user(user: UserModel | None) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db.execute.return_value = result
    return db


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUserId:
    async def test_active_user_resolved(self) -> None:
        user = UserModel(id="alice", username="alice", is_active=True)
        user_id = await get_current_user_id(
            _bearer(create_access_token("alice")), _db_with_user(user)
        )
        assert user_id == "alice"

    async def test_missing_credentials_is_401(self) -> None:
        db = _db_with_user(None)
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(None, db)
        assert exc_info.value.status_code == 401
        db.execute.assert_not_called()

    async def test_invalid_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(_bearer("not-a-jwt"), _db_with_user(None))
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_unknown_user_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(
                _bearer(create_access_token("ghost")), _db_with_user(None)
            )
        assert exc_info.value.status_code == 401

    async def test_disabled_user(self) -> None:
        user = UserModel(id="bob", username="bob", is_active=False)
        with pytest.raises(AccountDisabledError):
            await get_current_user_id(_bearer(create_access_token("bob")), _db_with_user(user))
