"""CLI tests — click commands against a mocked HTTP transport.

Learn: httpx.MockTransport stands in for the server, so these tests only
check what the CLI sends and prints. The key property: every protected
request carries the token given on the command line, and nothing else.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from tasktrack.cli import main as cli
from tasktrack.client import TaskTrackClient

TODO = {
    "id": "7d0a4f5e-2d4c-4a57-9a43-0b9f3b0c2f11",
    "text": "buy milk",
    "completed": False,
    "priority": "high",
    "createdAt": "2026-01-01T10:00:00",
}
USER = {"id": "0b1c", "username": "alice", "email": "alice@example.com", "role": "user"}


@pytest.fixture
def server(monkeypatch):
    """Fake API. Returns the list of requests it received."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path, method = request.url.path, request.method
        if path == "/api/login":
            return httpx.Response(200, json={"token": "tok-from-login", "user": USER})
        if path == "/api/register":
            return httpx.Response(201, json={"token": "tok-new", "user": USER})
        if request.headers.get("Authorization") != "Bearer secret-token":
            return httpx.Response(401, json={"error": "Unauthenticated", "detail": "Authentication required"})
        if path == "/api/me":
            return httpx.Response(200, json=USER)
        if path == "/api/todos" and method == "GET":
            return httpx.Response(200, json=[TODO])
        if path == "/api/todos" and method == "POST":
            return httpx.Response(201, json={**TODO, **json.loads(request.content)})
        if path.startswith("/api/todos/") and method == "PUT":
            return httpx.Response(200, json={**TODO, **json.loads(request.content)})
        if path.startswith("/api/todos/") and method == "DELETE":
            return httpx.Response(204)
        if path == "/api/admin/users":
            return httpx.Response(403, json={"error": "Forbidden", "detail": "Admin role required"})
        return httpx.Response(404, json={"error": "NotFound", "detail": "nope"})

    monkeypatch.setattr(
        cli,
        "_client",
        lambda api_url: TaskTrackClient(base_url=api_url, transport=httpx.MockTransport(handler)),
    )
    return seen


@pytest.fixture
def runner():
    return CliRunner()


def test_login_prints_token(runner, server):
    result = runner.invoke(cli.main, ["login", "alice@example.com", "--password", "pw"])
    assert result.exit_code == 0
    assert "tok-from-login" in result.output
    assert "Authorization" not in server[0].headers


def test_todos_sends_token_from_option(runner, server):
    result = runner.invoke(cli.main, ["todos", "--token", "secret-token"])
    assert result.exit_code == 0, result.output
    assert "buy milk" in result.output
    assert server[0].headers["Authorization"] == "Bearer secret-token"


def test_token_from_environment(runner, server):
    result = runner.invoke(cli.main, ["whoami"], env={"TASKTRACK_TOKEN": "secret-token"})
    assert result.exit_code == 0
    assert "alice <alice@example.com> role=user" in result.output


def test_missing_token_is_a_usage_error(runner, server):
    result = runner.invoke(cli.main, ["todos"], env={"TASKTRACK_TOKEN": None})
    assert result.exit_code == 2
    assert server == []


def test_bad_token_exits_nonzero(runner, server):
    result = runner.invoke(cli.main, ["todos", "--token", "wrong"])
    assert result.exit_code == 1
    assert "Unauthenticated" in result.output


def test_add_sends_priority_and_due(runner, server):
    result = runner.invoke(
        cli.main,
        ["add", "dentist", "--token", "secret-token", "-p", "low", "--due", "2030-01-15"],
    )
    assert result.exit_code == 0, result.output
    body = json.loads(server[0].content)
    assert body == {"text": "dentist", "priority": "low", "dueTime": "2030-01-15T00:00:00"}


def test_done_sends_only_completed(runner, server):
    result = runner.invoke(cli.main, ["done", TODO["id"], "--token", "secret-token"])
    assert result.exit_code == 0
    assert server[0].method == "PUT"
    assert json.loads(server[0].content) == {"completed": True}


def test_update_without_options_is_rejected(runner, server):
    result = runner.invoke(cli.main, ["update", TODO["id"], "--token", "secret-token"])
    assert result.exit_code == 2
    assert server == []


def test_update_clear_due(runner, server):
    result = runner.invoke(
        cli.main, ["update", TODO["id"], "--token", "secret-token", "--clear-due", "--undone"]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(server[0].content) == {"completed": False, "dueTime": None}


def test_rm(runner, server):
    result = runner.invoke(cli.main, ["rm", TODO["id"], "--token", "secret-token"])
    assert result.exit_code == 0
    assert server[0].method == "DELETE"
    assert f"Deleted {TODO['id']}" in result.output


def test_admin_users_forbidden(runner, server):
    result = runner.invoke(cli.main, ["admin-users", "--token", "secret-token"])
    assert result.exit_code == 1
    assert "Forbidden" in result.output


def test_unreachable_server_exits_cleanly(runner, monkeypatch):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    monkeypatch.setattr(
        cli,
        "_client",
        lambda api_url: TaskTrackClient(base_url=api_url, transport=httpx.MockTransport(refuse)),
    )
    result = runner.invoke(cli.main, ["todos", "--token", "secret-token"])
    assert result.exit_code == 1
    assert "Cannot reach TaskTrack server" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
