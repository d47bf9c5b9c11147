"""Unit tests for JWT identity resolution."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from config.settings import settings
from src.sl_common.errors import InvalidCredentialsError
from src.sl_gateway.auth.jwt_handler import (
    create_access_token,
    decode_access_token,
    resolve_user_id,
)


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("alice")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "alice"
    assert payload["type"] == "access"


def test_decode_valid_access_token() -> None:
    payload = decode_access_token(create_access_token("alice"))
    assert payload["sub"] == "alice"


def test_resolve_user_id() -> None:
    assert resolve_user_id(create_access_token("bob")) == "bob"


def test_non_access_token_rejected() -> None:
    """A token of another type (e.g. a refresh token) must not resolve."""
    token = jwt.encode(
        {"sub": "alice", "type": "refresh"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_missing_subject_rejected() -> None:
    token = jwt.encode(
        {"type": "access"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM
    )
    with pytest.raises(InvalidCredentialsError):
        resolve_user_id(token)


def test_expired_access_token_raises_credentials_error() -> None:
    with patch(
        "src.sl_gateway.auth.jwt_handler._ACCESS_EXPIRE",
        timedelta(seconds=-1),
    ):
        token = create_access_token("alice")
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)


def test_explicit_negative_expiry_raises() -> None:
    token = create_access_token("alice", expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidCredentialsError):
        resolve_user_id(token)


def test_wrong_secret_rejected() -> None:
    token = jwt.encode(
        {"sub": "alice", "type": "access"}, "some-other-secret", algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_access_token(token)
