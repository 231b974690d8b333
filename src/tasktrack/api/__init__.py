"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Health and auth routes are open. Todo and admin routes pull the
principal through get_current_principal / require_admin inside each
handler, because the handlers need the principal object itself, not
just the check.
"""

from fastapi import APIRouter

from tasktrack.api.admin import router as admin_router
from tasktrack.api.auth import router as auth_router
from tasktrack.api.health import router as health_router
from tasktrack.api.todos import router as todos_router

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — bearer token required
api_router.include_router(todos_router, tags=["todos"])
api_router.include_router(admin_router, tags=["admin"])
