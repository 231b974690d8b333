"""Async HTTP client for the TaskTrack API.

Learn: The client holds NO credential state. There is no "default
Authorization header" that login() quietly installs. Every protected
method takes the bearer token as an argument and builds the header for
that one request. Two tokens (say a user and an admin) can be used
through the same client instance without stepping on each other.

Non-2xx responses raise ApiError with the server's error kind.
"""

import uuid
from datetime import datetime
from typing import Any, Optional, Union

import httpx

DEFAULT_API_URL = "http://localhost:8000"

TodoId = Union[str, uuid.UUID]


class ApiError(Exception):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, kind: str, detail: Any):
        self.status_code = status_code
        self.kind = kind
        self.detail = detail
        super().__init__(f"{status_code} {kind}: {detail}")


def auth_headers(token: str) -> dict[str, str]:
    """Authorization header for a single request."""
    if not token:
        raise ValueError("A bearer token is required for this call")
    return {"Authorization": f"Bearer {token}"}


class TaskTrackClient:
    """Thin async wrapper around the /api surface."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "TaskTrackClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── Plumbing ────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[dict] = None,
    ) -> Any:
        headers = auth_headers(token) if token is not None else None
        r = await self._http.request(method, path, json=json, headers=headers)
        if r.is_success:
            return r.json() if r.content else None

        try:
            body = r.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        raise ApiError(
            r.status_code,
            body.get("error", "HTTPError"),
            body.get("detail", r.text),
        )

    # ─── Auth ────────────────────────────────────────────

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        role: Optional[str] = None,
    ) -> dict:
        body = {"username": username, "email": email, "password": password}
        if role:
            body["role"] = role
        return await self._request("POST", "/api/register", json=body)

    async def login(self, email: str, password: str) -> dict:
        return await self._request(
            "POST", "/api/login", json={"email": email, "password": password}
        )

    async def me(self, token: str) -> dict:
        return await self._request("GET", "/api/me", token=token)

    # ─── Todos ───────────────────────────────────────────

    async def list_todos(self, token: str) -> list[dict]:
        return await self._request("GET", "/api/todos", token=token)

    async def create_todo(
        self,
        token: str,
        text: str,
        priority: str = "medium",
        due_time: Optional[datetime] = None,
    ) -> dict:
        body: dict = {"text": text, "priority": priority}
        if due_time is not None:
            body["dueTime"] = due_time.isoformat()
        return await self._request("POST", "/api/todos", token=token, json=body)

    async def update_todo(
        self,
        token: str,
        todo_id: TodoId,
        text: Optional[str] = None,
        completed: Optional[bool] = None,
        priority: Optional[str] = None,
        due_time: Optional[datetime] = None,
        clear_due_time: bool = False,
    ) -> dict:
        """Send only the fields that were given (None = leave unchanged)."""
        body: dict = {}
        if text is not None:
            body["text"] = text
        if completed is not None:
            body["completed"] = completed
        if priority is not None:
            body["priority"] = priority
        if clear_due_time:
            body["dueTime"] = None
        elif due_time is not None:
            body["dueTime"] = due_time.isoformat()
        return await self._request("PUT", f"/api/todos/{todo_id}", token=token, json=body)

    async def delete_todo(self, token: str, todo_id: TodoId) -> None:
        await self._request("DELETE", f"/api/todos/{todo_id}", token=token)

    # ─── Admin / health ─────────────────────────────────

    async def list_users_with_todos(self, token: str) -> list[dict]:
        return await self._request("GET", "/api/admin/users", token=token)

    async def health(self) -> dict:
        return await self._request("GET", "/api/health")
