"""Identity service — registration, login, and token resolution.

Learn: This is the credential half of the core:
- register: hash the password, enforce unique email, issue a token
- authenticate: one generic InvalidCredentials for unknown email AND
  wrong password, so the endpoint can't be used to enumerate accounts
- resolve_token: the per-request check behind get_current_principal:
  verify signature, then re-load the user (no caching between requests)

Role assignment at registration goes through one policy point,
settings.allow_self_assigned_role.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.jwt import TokenError, TokenExpiredError, create_access_token, verify_token
from tasktrack.auth.password import burn_verify, hash_password, verify_password
from tasktrack.auth.principal import Principal
from tasktrack.config import settings
from tasktrack.db.models import ROLE_ADMIN, ROLE_USER, ROLES, User
from tasktrack.errors import (
    DuplicateIdentity,
    Forbidden,
    InvalidCredentials,
    InvalidInput,
    TokenExpired,
    Unauthenticated,
)

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class IdentityService:
    """Business logic for principals and credentials."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Lookup ──────────────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    # ─── Register ────────────────────────────────────────

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        requested_role: Optional[str] = None,
    ) -> tuple[str, User]:
        """Create a principal and return (token, user).

        Raises:
            InvalidInput: blank username/email, short password, unknown role
            DuplicateIdentity: email already registered
            Forbidden: admin requested while self-assigned roles are disabled
        """
        username = (username or "").strip()
        email = normalize_email(email)
        role = requested_role or ROLE_USER

        if not username:
            raise InvalidInput("Username is required")
        if not email or "@" not in email:
            raise InvalidInput("A valid email is required")
        if len(password or "") < settings.password_min_length:
            raise InvalidInput(
                f"Password must be at least {settings.password_min_length} characters"
            )
        if role not in ROLES:
            raise InvalidInput(f"Role must be one of: {', '.join(ROLES)}")

        if role == ROLE_ADMIN:
            if not settings.allow_self_assigned_role:
                raise Forbidden("Self-assigned admin role is disabled")
            logger.warning("auth.self_assigned_admin", email=email)

        if await self.get_user_by_email(email):
            raise DuplicateIdentity()

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            await self.db.rollback()
            raise DuplicateIdentity()
        await self.db.refresh(user)

        logger.info("auth.registered", user_id=str(user.id), role=user.role)
        return create_access_token(str(user.id)), user

    # ─── Login ───────────────────────────────────────────

    async def authenticate(self, email: str, password: str) -> tuple[str, User]:
        """Verify email/password and return (token, user).

        Raises InvalidCredentials for any failure, without saying which.
        """
        user = await self.get_user_by_email(email)
        if not user:
            burn_verify(password or "")
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        if not verify_password(password or "", user.password_hash):
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        logger.info("auth.logged_in", user_id=str(user.id))
        return create_access_token(str(user.id)), user

    # ─── Token validation ────────────────────────────────

    async def resolve_token(self, token: Optional[str]) -> Principal:
        """Turn a bearer token into a live Principal.

        Raises Unauthenticated (or TokenExpired) if the token is missing,
        malformed, badly signed, expired, or names a user that no longer
        exists.
        """
        if not token:
            raise Unauthenticated()

        try:
            payload = verify_token(token)
        except TokenExpiredError as e:
            raise TokenExpired(str(e))
        except TokenError as e:
            raise Unauthenticated(str(e))

        try:
            user_id = uuid.UUID(payload["sub"])
        except (ValueError, TypeError, AttributeError):
            raise Unauthenticated("Invalid token: bad subject")

        user = await self.get_user(user_id)
        if not user:
            raise Unauthenticated("User no longer exists")

        return Principal.from_user(user)

    # ─── Bootstrap ───────────────────────────────────────

    async def ensure_admin(self, username: str, email: str, password: str) -> User:
        """Create an admin principal unless one with this email exists.

        Learn: Idempotent — safe to run on every startup. An existing
        account is returned as-is (its role and password are not touched).
        """
        existing = await self.get_user_by_email(email)
        if existing:
            return existing

        user = User(
            username=username,
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=ROLE_ADMIN,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("auth.admin_seeded", user_id=str(user.id))
        return user
