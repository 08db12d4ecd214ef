"""Bearer token verification and capability checks for route handlers."""

from __future__ import annotations

from typing import Annotated

import jwt
from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config import settings
from src.models.user import Identity

_bearer = HTTPBearer(auto_error=False)


def decode_identity(token: str) -> Identity:
    """Verify ``token`` and return the identity it carries."""

    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired"
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        ) from exc

    user_id = payload.get("id")
    if not isinstance(user_id, str) or not ObjectId.is_valid(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload"
        )
    return Identity(user_id=user_id, is_admin=bool(payload.get("is_admin", False)))


def get_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Identity:
    """FastAPI dependency resolving the authenticated caller."""

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no bearer token attached",
        )
    return decode_identity(credentials.credentials)


IdentityDependency = Annotated[Identity, Depends(get_identity)]


def require_admin(identity: IdentityDependency) -> Identity:
    """Capability check for administrator-only routes."""

    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return identity


AdminDependency = Annotated[Identity, Depends(require_admin)]
