"""
Access token utilities.

Track Hub runs no login flow of its own. Users sign in against the hosted
auth backend, which hands the browser an HS256-signed JWT whose "sub" claim
is the user id. This API only verifies those tokens, using the same shared
SECRET_KEY.

mint_access_token() exists for the demo seed script and the test suite,
which need tokens without a running auth backend.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from trackhub.config import settings


def mint_access_token(
    subject: str | None,
    *,
    expires_delta: timedelta | None = None,
    claims: dict[str, Any] | None = None,
) -> str:
    """
    Sign a token the way the auth backend does.

    Args:
        subject: Value of the "sub" claim (a user id). None leaves it out.
        expires_delta: Lifetime; ACCESS_TOKEN_EXPIRE_MINUTES by default.
                       Negative values produce an already-expired token.
        claims: Any further claims to embed.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = dict(claims or {})
    if subject is not None:
        payload["sub"] = subject
    payload["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify the signature and expiry of a token and return its claims.

    Raises:
        JWTError: If the token is expired, signed with another key, or malformed.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
