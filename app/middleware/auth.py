"""JWT verification for the recurring task routes.

Tokens are issued by the external auth provider; this service only checks the
signature and expiry and reads the user id from the ``sub`` claim.
"""
from fastapi import HTTPException, status, Request
from jose import jwt, JWTError
from pydantic import BaseModel
from typing import Any, Dict, Optional
import os

AUTH_SECRET = os.environ.get("AUTH_SECRET", "dev-only-routines-secret-change-me")
AUTH_ALGORITHM = "HS256"
BEARER_PREFIX = "Bearer "


class CurrentUser(BaseModel):
    """Identity carried by a verified token."""
    user_id: str
    email: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        HTTPException: 401 if the token is expired or its signature is invalid
    """
    try:
        return jwt.decode(token, AUTH_SECRET, algorithms=[AUTH_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")


async def get_current_user(request: Request) -> CurrentUser:
    """Authenticated user from the ``Authorization: Bearer`` header."""
    header = request.headers.get("authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        raise _unauthorized("Missing or invalid Authorization header")

    claims = decode_access_token(header[len(BEARER_PREFIX):])
    if not claims.get("sub"):
        raise _unauthorized("Invalid token: missing user ID")

    return CurrentUser(user_id=claims["sub"], email=claims.get("email"))


async def verify_user_access(user_id: str, request: Request) -> str:
    """
    Path dependency: the ``user_id`` in the URL must be the token's subject.

    Raises:
        HTTPException: 401 without a valid token, 403 for another user's path
    """
    current_user = await get_current_user(request)
    if user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's recurring tasks"
        )
    return user_id
