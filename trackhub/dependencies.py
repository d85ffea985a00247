"""
FastAPI dependencies for authentication.

Every finance endpoint declares `user_id: uuid.UUID = Depends(get_current_user_id)`.
FastAPI calls the dependency before the route handler runs; if the bearer
token is missing, expired or tampered with, the request is rejected with
401 and the handler never sees it.

The returned user id is passed into every service call, which scopes all
queries by it. There is no cross-user access path.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from trackhub.security import decode_access_token


# auto_error=False so a missing header gets the same 401 as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    Validate the bearer token and return the user id from its "sub" claim.

    Raises:
        HTTPException 401: If the token is missing, invalid, or has no usable subject.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
        user_id_str: str | None = payload.get("sub")
        if user_id_str is None:
            raise credentials_exception
        return uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise credentials_exception
