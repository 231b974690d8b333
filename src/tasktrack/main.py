"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (logging, Redis, admin seed,
database engine). Middleware, CORS, error handlers and routers are all
registered here.

Error handling: services raise TaskTrackError subclasses; one handler
renders them as {"error": kind, "detail": message}. Body/path validation
failures are reported as InvalidInput (400) rather than FastAPI's 422.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasktrack import __version__
from tasktrack.api import api_router
from tasktrack.config import settings
from tasktrack.errors import InvalidInput, TaskTrackError
from tasktrack.logging_setup import configure_logging

logger = structlog.get_logger()


async def seed_admin() -> None:
    """Ensure the configured bootstrap admin exists (no-op if unset)."""
    if not (settings.seed_admin_email and settings.seed_admin_password):
        return

    from tasktrack.db.engine import async_session_factory
    from tasktrack.services.identity_service import IdentityService

    async with async_session_factory() as db:
        await IdentityService(db).ensure_admin(
            username=settings.seed_admin_username,
            email=settings.seed_admin_email,
            password=settings.seed_admin_password,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info(
        "tasktrack.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        self_assigned_roles=settings.allow_self_assigned_role,
        token_expiry_minutes=settings.token_expire_minutes,
    )

    from tasktrack.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("tasktrack.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional — app works without rate limiting
        logger.warning("tasktrack.redis_unavailable", error=str(e))

    await seed_admin()

    yield

    logger.info("tasktrack.shutdown")
    await close_redis()

    from tasktrack.db.engine import engine
    await engine.dispose()


def _error_body(kind: str, detail) -> dict:
    return {"error": kind, "detail": detail}


async def handle_domain_error(request: Request, exc: TaskTrackError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error("http.domain_error", kind=exc.kind, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.kind, exc.detail),
        headers=headers,
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={**_error_body(InvalidInput.__name__, "Invalid request"), "errors": errors},
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("http.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=_error_body("InternalError", "Internal Server Error"),
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="TaskTrack",
        description="Multi-user task tracking API with role-scoped access",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Security → RateLimit → handler
    # so a 429 still carries the request id and security headers.

    from tasktrack.middleware.rate_limit import RateLimitMiddleware
    from tasktrack.middleware.request_id import RequestIdMiddleware
    from tasktrack.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error handlers ────────────────────────────────────────
    app.add_exception_handler(TaskTrackError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: tasktrack.main:app)
app = create_app()
