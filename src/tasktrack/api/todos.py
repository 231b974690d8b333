"""Todo API routes.

Learn: Every route depends on get_current_principal, and passes the
principal into TodoService. The service (not the route) decides which
rows the caller can see or change, so there is exactly one place where
the access rules live.

- GET /todos → own todos (admin: all todos, with owner)
- POST /todos → create, owner = caller (201)
- PUT /todos/{id} → partial update (404 if missing or not yours)
- DELETE /todos/{id} → permanent delete (204)
"""

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.auth.dependencies import get_current_principal
from tasktrack.auth.principal import Principal
from tasktrack.db.engine import get_db
from tasktrack.schemas.todo import TodoCreate, TodoRead, TodoUpdate
from tasktrack.services.todo_service import TodoService

router = APIRouter(prefix="/todos")


def _svc(db: AsyncSession = Depends(get_db)) -> TodoService:
    return TodoService(db)


@router.get("", response_model=list[TodoRead], response_model_exclude_none=True)
async def list_todos(
    principal: Principal = Depends(get_current_principal),
    svc: TodoService = Depends(_svc),
):
    """List todos visible to the caller, newest first."""
    todos = await svc.list_todos(principal)
    return [TodoRead.from_todo(t, include_owner=principal.is_admin) for t in todos]


@router.post("", response_model=TodoRead, status_code=201, response_model_exclude_none=True)
async def create_todo(
    body: TodoCreate,
    principal: Principal = Depends(get_current_principal),
    svc: TodoService = Depends(_svc),
):
    todo = await svc.create_todo(
        principal,
        text=body.text,
        priority=body.priority,
        due_time=body.due_time,
    )
    return TodoRead.from_todo(todo)


@router.put("/{todo_id}", response_model=TodoRead, response_model_exclude_none=True)
async def update_todo(
    todo_id: uuid.UUID,
    body: TodoUpdate,
    principal: Principal = Depends(get_current_principal),
    svc: TodoService = Depends(_svc),
):
    """Partially update a todo (text, completed, priority, dueTime)."""
    todo = await svc.update_todo(principal, todo_id, body)
    return TodoRead.from_todo(todo)


@router.delete("/{todo_id}", status_code=204)
async def delete_todo(
    todo_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    svc: TodoService = Depends(_svc),
):
    await svc.delete_todo(principal, todo_id)
    return Response(status_code=204)
