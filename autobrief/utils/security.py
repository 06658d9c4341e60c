"""JWT helpers for bearer tokens issued by the external auth provider."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from autobrief.config.settings import settings

_DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class AuthenticationError(Exception):
    """Raised when a JWT cannot be decoded or is otherwise invalid."""


class TokenPayload(BaseModel):
    """Minimal payload structure embedded in JWT access tokens."""

    sub: str
    exp: datetime
    email: str | None = None
    role: str | None = None
    iat: datetime | None = None


def create_access_token(
    subject: str,
    *,
    email: str | None = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Generate a signed JWT for ``subject``; used by tooling and tests."""

    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": subject,
        "exp": now + (expires_delta or _DEFAULT_TOKEN_LIFETIME),
        "iat": now,
    }
    if email:
        to_encode["email"] = email
    if settings.security.jwt_audience:
        to_encode["aud"] = settings.security.jwt_audience

    secret = settings.security.jwt_secret_key.get_secret_value()
    return jwt.encode(to_encode, secret, algorithm=settings.security.jwt_algorithm)


def decode_access_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token, returning its payload."""

    secret = settings.security.jwt_secret_key.get_secret_value()
    audience = settings.security.jwt_audience
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.security.jwt_algorithm],
            audience=audience,
            options={"verify_aud": bool(audience)},
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid authentication token") from exc


__all__ = [
    "AuthenticationError",
    "TokenPayload",
    "create_access_token",
    "decode_access_token",
]
