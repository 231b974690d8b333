"""Todo service — role-scoped access to to-do items.

Learn: Every method takes the caller's Principal and derives an access
filter from it before touching the database:
- admin → may see and modify any todo
- user  → only todos where user_id == principal.user_id

update/delete raise NotFound when the filter matches nothing. That covers
both "no such id" and "someone else's todo" on purpose, so a caller
can't probe for ids that belong to other users.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tasktrack.auth.principal import Principal, require_role
from tasktrack.db.models import PRIORITIES, ROLE_ADMIN, ROLE_USER, Todo, User
from tasktrack.errors import InvalidInput, NotFound
from tasktrack.schemas.todo import TodoUpdate

logger = structlog.get_logger()


def _clean_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise InvalidInput("Todo text is required")
    return text


def _check_priority(priority: Optional[str]) -> str:
    if priority not in PRIORITIES:
        raise InvalidInput(f"Priority must be one of: {', '.join(PRIORITIES)}")
    return priority


class TodoService:
    """Business logic for todo CRUD, scoped by principal."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Access filter ───────────────────────────────────

    @staticmethod
    def access_filter(principal: Principal, todo_id: uuid.UUID):
        """WHERE clause for the todos this principal may modify."""
        clause = Todo.id == todo_id
        if not principal.is_admin:
            clause = and_(clause, Todo.user_id == principal.user_id)
        return clause

    async def _get_scoped(self, principal: Principal, todo_id: uuid.UUID) -> Todo:
        result = await self.db.execute(
            select(Todo).where(self.access_filter(principal, todo_id))
        )
        todo = result.scalars().first()
        if not todo:
            raise NotFound()
        return todo

    # ─── Read ────────────────────────────────────────────

    async def list_todos(self, principal: Principal) -> list[Todo]:
        """Todos visible to the principal, newest first.

        Learn: Admin results eager-load the owner so the route can attach
        the username/email projection without a lazy load.
        """
        query = select(Todo).order_by(Todo.created_at.desc(), Todo.id)
        if principal.is_admin:
            query = query.options(selectinload(Todo.user))
        else:
            query = query.where(Todo.user_id == principal.user_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_users_with_todos(self, principal: Principal) -> list[User]:
        """Every non-admin user with their todos loaded. Admin only."""
        require_role(principal, ROLE_ADMIN)
        result = await self.db.execute(
            select(User)
            .where(User.role == ROLE_USER)
            .options(selectinload(User.todos))
            .order_by(User.created_at, User.id)
        )
        return list(result.scalars().all())

    # ─── Create ──────────────────────────────────────────

    async def create_todo(
        self,
        principal: Principal,
        text: str,
        priority: Optional[str] = None,
        due_time: Optional[datetime] = None,
    ) -> Todo:
        """Create a todo owned by the caller.

        The owner is always principal.user_id; there is no parameter
        to set it to anything else.
        """
        todo = Todo(
            user_id=principal.user_id,
            text=_clean_text(text),
            priority=_check_priority(priority or "medium"),
            completed=False,
            due_time=due_time,
        )
        self.db.add(todo)
        await self.db.commit()
        await self.db.refresh(todo)

        logger.info("todo.created", todo_id=str(todo.id), user_id=str(principal.user_id))
        return todo

    # ─── Update ──────────────────────────────────────────

    async def update_todo(
        self,
        principal: Principal,
        todo_id: uuid.UUID,
        patch: TodoUpdate,
    ) -> Todo:
        """Apply the fields present in `patch` (text, completed, priority, dueTime).

        Raises NotFound if the todo doesn't exist or the caller may not touch it.
        """
        todo = await self._get_scoped(principal, todo_id)
        fields = patch.model_fields_set

        changes = []
        if "text" in fields:
            todo.text = _clean_text(patch.text)
            changes.append("text")
        if "completed" in fields:
            if patch.completed is None:
                raise InvalidInput("completed must be true or false")
            todo.completed = patch.completed
            changes.append("completed")
        if "priority" in fields:
            todo.priority = _check_priority(patch.priority)
            changes.append("priority")
        if "due_time" in fields:
            todo.due_time = patch.due_time
            changes.append("due_time")

        await self.db.commit()
        await self.db.refresh(todo)

        logger.info(
            "todo.updated",
            todo_id=str(todo.id),
            actor_id=str(principal.user_id),
            fields=changes,
        )
        return todo

    # ─── Delete ──────────────────────────────────────────

    async def delete_todo(self, principal: Principal, todo_id: uuid.UUID) -> None:
        """Permanently delete a todo. Same NotFound rules as update."""
        todo = await self._get_scoped(principal, todo_id)
        await self.db.delete(todo)
        await self.db.commit()

        logger.info("todo.deleted", todo_id=str(todo_id), actor_id=str(principal.user_id))
