"""Error taxonomy shared by the service layer and the HTTP boundary.

Learn: Services never raise HTTPException; they raise one of these.
Each class carries its HTTP status, and main.py installs one exception
handler that renders any TaskTrackError as {"error": kind, "detail": msg}.

NotFound is used both for "no such record" and "record exists but is
not yours". Callers must not be able to tell the two apart.
"""

from typing import Optional


class TaskTrackError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidInput(TaskTrackError):
    status_code = 400
    default_detail = "Invalid input"


class DuplicateIdentity(TaskTrackError):
    status_code = 400
    default_detail = "Email already registered"


class InvalidCredentials(TaskTrackError):
    status_code = 401
    default_detail = "Invalid credentials"


class Unauthenticated(TaskTrackError):
    status_code = 401
    default_detail = "Authentication required"


class TokenExpired(Unauthenticated):
    default_detail = "Token has expired"


class Forbidden(TaskTrackError):
    status_code = 403
    default_detail = "Insufficient role"


class NotFound(TaskTrackError):
    status_code = 404
    default_detail = "Todo not found"
