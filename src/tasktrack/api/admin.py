"""Admin API routes.

Learn: The router-level require_admin dependency runs before any handler,
so a non-admin gets 403 without the handler ever executing.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.dependencies import require_admin
from tasktrack.auth.principal import Principal
from tasktrack.db.engine import get_db
from tasktrack.schemas.todo import UserWithTodos
from tasktrack.services.todo_service import TodoService

router = APIRouter(prefix="/admin")


@router.get("/users", response_model=list[UserWithTodos], response_model_exclude_none=True)
async def list_users_with_todos(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every regular user with all of their todos."""
    users = await TodoService(db).list_users_with_todos(principal)
    return [UserWithTodos.from_user(u) for u in users]
