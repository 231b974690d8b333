"""Pydantic schemas for todos.

Learn: Separate schemas for create/update/read keeps the API clean.
- TodoCreate: what you POST. There is no owner field; any `user` key in
  the body is ignored.
- TodoUpdate: what you PUT. Every field is optional and only the fields
  present in the body are applied (see model_fields_set).
- TodoRead: what the API returns. `user` is filled in only for admin lists.

JSON uses camelCase (dueTime, createdAt); Python uses snake_case.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from tasktrack.db.models import Todo, User
from tasktrack.schemas.auth import UserPublic

Priority = Literal["low", "medium", "high"]

_camel = {"alias_generator": to_camel, "populate_by_name": True}


class TodoCreate(BaseModel):
    text: str
    priority: Priority = "medium"
    due_time: Optional[datetime] = None

    model_config = _camel

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text must not be blank")
        return v


class TodoUpdate(BaseModel):
    """Partial update — only fields present in the request are applied."""
    text: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    due_time: Optional[datetime] = None

    model_config = _camel

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("text must not be null")
        v = v.strip()
        if not v:
            raise ValueError("text must not be blank")
        return v

    @field_validator("completed", "priority")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("field must not be null")
        return v


class OwnerView(BaseModel):
    """Minimal owner projection attached to admin-scoped todo lists."""
    username: str
    email: str

    model_config = {"from_attributes": True}


class TodoRead(BaseModel):
    id: uuid.UUID
    text: str
    completed: bool
    priority: str
    due_time: Optional[datetime] = None
    created_at: datetime
    user: Optional[OwnerView] = None

    model_config = {"from_attributes": True, **_camel}

    @classmethod
    def from_todo(cls, todo: Todo, include_owner: bool = False) -> "TodoRead":
        """Build the read model without touching unloaded relationships."""
        return cls(
            id=todo.id,
            text=todo.text,
            completed=todo.completed,
            priority=todo.priority,
            due_time=todo.due_time,
            created_at=todo.created_at,
            user=OwnerView.model_validate(todo.user) if include_owner else None,
        )


class UserWithTodos(UserPublic):
    todos: list[TodoRead]

    @classmethod
    def from_user(cls, user: User) -> "UserWithTodos":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            todos=[TodoRead.from_todo(t) for t in user.todos],
        )
