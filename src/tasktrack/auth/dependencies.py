"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract and
validate the current principal from the request. The token is read from
`Authorization: Bearer <token>` on every request and nothing is cached
between requests.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.principal import Principal, require_role
from tasktrack.db.engine import get_db
from tasktrack.db.models import ROLE_ADMIN
from tasktrack.errors import Unauthenticated
from tasktrack.services.identity_service import IdentityService


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the raw token out of an Authorization header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Malformed Authorization header")
    return token.strip()


async def get_current_principal(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Resolve the request's principal (required — 401 if no valid token)."""
    token = bearer_token(authorization)
    return await IdentityService(db).resolve_token(token)


async def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Gate for admin-only routes (403 for non-admins)."""
    return require_role(principal, ROLE_ADMIN)
