"""The resolved caller identity and the role gate.

Learn: Principal is what every protected route receives after the token
has been verified and the user row re-loaded. Services compute their
access filters from it; nothing downstream looks at the raw token.
"""

import uuid

from tasktrack.db.models import ROLE_ADMIN, User
from tasktrack.errors import Forbidden


class Principal:
    """Represents the authenticated user making the request."""

    def __init__(
        self,
        user_id: uuid.UUID,
        role: str,
        username: str = "",
        email: str = "",
    ):
        self.user_id = user_id
        self.role = role
        self.username = username
        self.email = email

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            user_id=user.id,
            role=user.role,
            username=user.username,
            email=user.email,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"Principal(user_id={self.user_id}, role={self.role!r})"


def require_role(principal: Principal, role: str) -> Principal:
    """Raise Forbidden unless the principal has exactly this role."""
    if principal.role != role:
        raise Forbidden(f"{role.capitalize()} role required")
    return principal
