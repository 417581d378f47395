from fastapi import Depends, HTTPException, status, Request
from fastapi.security import APIKeyHeader
from typing import Annotated, Optional
from jose import jwt, JWTError

from .config import settings

api_key_header = APIKeyHeader(name="Authorization")
optional_api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


def decode_user_id(token: str) -> int:
    """
    Decodes an 'Authorization: Bearer ...' value and returns the user id in 'sub'.
    Raises ValueError/JWTError on anything malformed.
    """
    scheme, jwt_token = token.split()
    if scheme.lower() != "bearer":
        raise ValueError("Unsupported authorization scheme")
    payload = jwt.decode(jwt_token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    return int(payload.get("sub"))


async def get_key_by_user_id_or_ip(request: Request) -> str:
    """
    Tries to get the user ID from the JWT token.
    If it fails (no token, invalid token), it falls back to the client's IP.
    """
    try:
        return str(decode_user_id(request.headers.get("Authorization")))
    except (JWTError, ValueError, AttributeError, TypeError):
        # If token is invalid, missing, or malformed, limit by IP
        return request.client.host


async def get_current_user_id_from_token(
        token: Annotated[str, Depends(api_key_header)]
) -> int:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return decode_user_id(token)
    except (JWTError, ValueError, AttributeError, TypeError):
        raise credentials_exception


async def get_optional_user_id_from_token(
        token: Annotated[Optional[str], Depends(optional_api_key_header)]
) -> Optional[int]:
    """Anonymous callers are allowed; a token that is present must still be valid."""
    if token is None:
        return None
    return await get_current_user_id_from_token(token)
