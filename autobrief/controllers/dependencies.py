"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from autobrief.database import get_session
from autobrief.utils import AuthenticationError, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)
SessionDep = Annotated[AsyncSession, Depends(get_session)]


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity taken from a verified bearer token."""

    id: UUID
    email: Optional[str]
    token: str

    @property
    def authorization(self) -> str:
        return f"Bearer {self.token}"


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> AuthenticatedUser:
    """Resolve and validate the user referenced by the bearer token."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = UUID(payload.sub)
    except (AuthenticationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return AuthenticatedUser(id=user_id, email=payload.email, token=credentials.credentials)


CurrentUserDep = Annotated[AuthenticatedUser, Depends(get_current_user)]


__all__ = [
    "AuthenticatedUser",
    "CurrentUserDep",
    "SessionDep",
    "bearer_scheme",
    "get_current_user",
]
