"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication — there is
no server-side session table. A token is valid as long as its signature
checks out (and, if TASKTRACK_TOKEN_EXPIRE_MINUTES is set, it hasn't
expired). By default no `exp` claim is added, so tokens never expire.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from tasktrack.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpiredError(TokenError):
    """Raised when a token's exp claim is in the past."""


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token for a user id."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
    }
    minutes = expires_minutes or settings.token_expire_minutes
    if minutes:
        payload["exp"] = now + timedelta(minutes=minutes)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenExpiredError / TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenError("Invalid token: missing subject")
    return payload
