"""
verify.py
---------
Purpose:
    Bearer JWT verification (HS256, shared secret).

Notes:
    - Token issuance lives outside this service.
    - `sub` carries the integer user id, `is_admin` the admin flag.
    - Provides `auth_dependency` for protected routes and
      `admin_dependency` for admin-only routes.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from liqa.config import settings

JWT_ALGORITHM = "HS256"

_security = HTTPBearer()


def verify_jwt(token: str) -> dict:
    if not settings.JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )

    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_exp": True, "verify_aud": settings.JWT_AUDIENCE is not None},
        )
        int(decoded["sub"])
        return decoded
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def admin_dependency(claims: dict = Depends(auth_dependency)) -> dict:
    if not claims.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return claims


def current_user_id(claims: dict) -> int:
    return int(claims["sub"])
