"""JWT access-token verification (identity resolution).

Tokens are issued by the external identity provider, which shares JWT_SECRET
with this service (HS256). The ledger never sees passwords or refresh tokens:
it only turns a bearer token into a stable user id via the ``sub`` claim.

create_access_token is kept for operator tooling and tests.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.sl_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Issue a short-lived access token (default: JWT_EXPIRE_MINUTES)."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_access_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature invalid, token expired, or the
            token is not an access token (e.g. a refresh token replayed here).
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    return payload


def resolve_user_id(token: str) -> str:
    """Return the user id carried by a valid access token."""
    user_id = decode_access_token(token).get("sub")
    if not user_id:
        raise InvalidCredentialsError()
    return str(user_id)
