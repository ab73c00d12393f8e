"""Moderator capability tokens built on JWT."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from inkognito.core.settings import settings


def create_access_token(subject: str, role: str | None = None) -> str:
    """Create a signed access token carrying an optional role claim."""
    to_encode: dict[str, Any] = {"sub": subject}
    if role is not None:
        to_encode["role"] = role
    to_encode["exp"] = datetime.now(UTC) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def is_moderator_token(token: str) -> bool:
    """Return True if `token` is valid and grants the moderator role.

    Expired, malformed or foreign-signed tokens are simply not moderator
    tokens; the caller decides how to reject them.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return False
    return payload.get("role") == settings.moderator_role
