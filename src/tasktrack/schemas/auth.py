"""Pydantic schemas for registration, login, and the public user view.

Learn: UserPublic is the ONLY shape a user is ever serialized in.
It has no password_hash field, so the hash can't leak through
from_attributes even by accident.
"""

import uuid
from typing import Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    role: Optional[str] = None  # validated by IdentityService (policy point)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserPublic(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    role: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str
    user: UserPublic
