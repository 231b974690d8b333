"""Auth API — registration, login, current user.

Learn: Routes for the credential flow:
- POST /register → create a principal, returns {token, user} (201)
- POST /login → email/password → {token, user}
- GET /me → the principal behind the bearer token

Routes only translate HTTP to IdentityService calls. Errors are raised
as TaskTrackError subclasses and rendered by the app-level handler.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.dependencies import get_current_principal
from tasktrack.auth.principal import Principal
from tasktrack.db.engine import get_db
from tasktrack.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from tasktrack.services.identity_service import IdentityService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> IdentityService:
    return IdentityService(db)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: IdentityService = Depends(_svc)):
    """Create a new account and log it in."""
    token, user = await svc.register(
        username=body.username,
        email=body.email,
        password=body.password,
        requested_role=body.role,
    )
    return AuthResponse(token=token, user=UserPublic.model_validate(user))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: IdentityService = Depends(_svc)):
    """Login with email and password → bearer token."""
    token, user = await svc.authenticate(body.email, body.password)
    return AuthResponse(token=token, user=UserPublic.model_validate(user))


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserPublic)
async def get_me(principal: Principal = Depends(get_current_principal)):
    """Get the current authenticated user's info."""
    return UserPublic(
        id=principal.user_id,
        username=principal.username,
        email=principal.email,
        role=principal.role,
    )
