"""
Session token helpers (signed JWTs carried in an HttpOnly cookie).
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ..config import get_settings

SESSION_COOKIE = "session"
AUTH_COOKIE = "auth"


def create_session_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed session token for ``user_id``.

    Args:
        user_id: Identity uid stored as the ``sub`` claim
        expires_minutes: Optional override for the configured lifetime

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.session_expire_minutes
    )
    claims = {
        "sub": user_id,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(claims, settings.app_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token.

    Raises:
        ValueError: If the signature or expiry check fails.
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.app_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid session token") from exc


def set_session_cookies(response, user_id: str) -> None:
    """Attach the session token and the coarse ``auth`` flag to a response."""
    settings = get_settings()
    max_age = settings.session_expire_minutes * 60
    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(user_id),
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    response.set_cookie(
        AUTH_COOKIE,
        "true",
        max_age=max_age,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookies(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
    response.delete_cookie(AUTH_COOKIE)
