"""TaskTrack CLI — talk to a TaskTrack server from the terminal.

Usage:
    tasktrack register alice alice@example.com      # prompts for password
    tasktrack login alice@example.com               # prints a token
    export TASKTRACK_TOKEN=...
    tasktrack todos                                  # list your todos
    tasktrack add "buy milk" --priority high
    tasktrack done <id>
    tasktrack rm <id>
    tasktrack admin-users                            # admins only

The token is never written to disk or shared state; every command takes
it from --token / TASKTRACK_TOKEN and hands it to the client call.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from datetime import datetime
from typing import Optional

import click
import httpx
from click.core import ParameterSource

from tasktrack import __version__
from tasktrack.client import DEFAULT_API_URL, ApiError, TaskTrackClient

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_DUE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"]

token_option = click.option(
    "--token",
    envvar="TASKTRACK_TOKEN",
    required=True,
    help="Bearer token (or set TASKTRACK_TOKEN)",
)


def _client(api_url: str) -> TaskTrackClient:
    """Build an API client pointed at the TaskTrack server."""
    return TaskTrackClient(base_url=api_url, timeout=30.0)


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    API and transport errors are printed and turned into exit status 1.
    """
    try:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
    except ApiError as e:
        click.secho(f"Error ({e.status_code} {e.kind}): {e.detail}", fg="red", err=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        click.secho(f"Cannot reach TaskTrack server: {e}", fg="red", err=True)
        sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) if row.get(k) is not None else "—")[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _priority_color(priority: str) -> str:
    return {"high": "red", "medium": "yellow", "low": "green"}.get(priority, "white")


def _todo_rows(todos: list[dict]) -> list[dict]:
    return [
        {
            **t,
            "done": "x" if t.get("completed") else " ",
            "owner": (t.get("user") or {}).get("username"),
        }
        for t in todos
    ]


_TODO_COLUMNS = [
    ("ID", "id", 36),
    ("Done", "done", 4),
    ("Priority", "priority", 8),
    ("Due", "dueTime", 19),
    ("Text", "text", 50),
]


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tasktrack")
@click.option(
    "--api-url",
    envvar="TASKTRACK_API_URL",
    default=DEFAULT_API_URL,
    show_default=True,
    help="TaskTrack server URL (or set TASKTRACK_API_URL)",
)
@click.pass_context
def main(ctx: click.Context, api_url: str):
    """TaskTrack — manage your todos from the command line."""
    ctx.obj = {"api_url": api_url.rstrip("/")}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--role", type=click.Choice(["user", "admin"]), default=None)
@click.pass_obj
def register(obj: dict, username: str, email: str, password: str, role: Optional[str]):
    """Create an account and print its token."""
    _run(_register_impl(obj["api_url"], username, email, password, role))


async def _register_impl(api_url: str, username: str, email: str, password: str,
                         role: Optional[str]):
    async with _client(api_url) as c:
        data = await c.register(username, email, password, role=role)
    user = data["user"]
    click.secho(f"Registered {user['username']} ({user['role']})", fg="green", err=True)
    click.echo(data["token"])


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_obj
def login(obj: dict, email: str, password: str):
    """Log in and print a bearer token (export it as TASKTRACK_TOKEN)."""
    _run(_login_impl(obj["api_url"], email, password))


async def _login_impl(api_url: str, email: str, password: str):
    async with _client(api_url) as c:
        data = await c.login(email, password)
    click.secho(f"Logged in as {data['user']['username']}", fg="green", err=True)
    click.echo(data["token"])


@main.command()
@token_option
@click.pass_obj
def whoami(obj: dict, token: str):
    """Show the account behind the token."""
    _run(_whoami_impl(obj["api_url"], token))


async def _whoami_impl(api_url: str, token: str):
    async with _client(api_url) as c:
        me = await c.me(token)
    click.echo(f"{me['username']} <{me['email']}> role={me['role']}")


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


@main.command()
@token_option
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def todos(obj: dict, token: str, as_json: bool):
    """List your todos (admins see everyone's)."""
    _run(_todos_impl(obj["api_url"], token, as_json))


async def _todos_impl(api_url: str, token: str, as_json: bool):
    async with _client(api_url) as c:
        items = await c.list_todos(token)

    if as_json:
        click.echo(_pretty_json(items))
        return
    if not items:
        click.echo("No todos.")
        return

    rows = _todo_rows(items)
    columns = list(_TODO_COLUMNS)
    if any(r["owner"] for r in rows):
        columns.insert(1, ("Owner", "owner", 12))
    click.secho(f"Todos ({len(items)}):", bold=True)
    click.echo()
    _print_table(rows, columns)


@main.command()
@click.argument("text")
@token_option
@click.option("--priority", "-p", type=click.Choice(["low", "medium", "high"]), default="medium")
@click.option("--due", type=click.DateTime(formats=_DUE_FORMATS), default=None, help="Due date/time")
@click.pass_obj
def add(obj: dict, text: str, token: str, priority: str, due: Optional[datetime]):
    """Create a todo."""
    _run(_add_impl(obj["api_url"], token, text, priority, due))


async def _add_impl(api_url: str, token: str, text: str, priority: str, due: Optional[datetime]):
    async with _client(api_url) as c:
        todo = await c.create_todo(token, text, priority=priority, due_time=due)
    prio = click.style(todo["priority"], fg=_priority_color(todo["priority"]))
    click.echo(f"Created {todo['id']} [{prio}] {todo['text']}")


@main.command()
@click.argument("todo_id")
@token_option
@click.option("--text", default=None)
@click.option("--priority", "-p", type=click.Choice(["low", "medium", "high"]), default=None)
@click.option("--due", type=click.DateTime(formats=_DUE_FORMATS), default=None)
@click.option("--clear-due", is_flag=True, help="Remove the due date")
@click.option("--done/--undone", "completed", default=None)
@click.pass_obj
def update(obj: dict, todo_id: str, token: str, text: Optional[str], priority: Optional[str],
           due: Optional[datetime], clear_due: bool, completed: Optional[bool]):
    """Change fields of a todo. Only the given options are sent."""
    ctx = click.get_current_context()
    if ctx.get_parameter_source("completed") == ParameterSource.DEFAULT:
        completed = None
    if all(v is None for v in (text, priority, due, completed)) and not clear_due:
        raise click.UsageError("Nothing to update: pass at least one option.")
    _run(_update_impl(obj["api_url"], token, todo_id, dict(
        text=text, priority=priority, due_time=due,
        clear_due_time=clear_due, completed=completed,
    )))


async def _update_impl(api_url: str, token: str, todo_id: str, fields: dict):
    async with _client(api_url) as c:
        todo = await c.update_todo(token, todo_id, **fields)
    state = "done" if todo["completed"] else "open"
    click.echo(f"Updated {todo['id']} ({state}) {todo['text']}")


@main.command()
@click.argument("todo_id")
@token_option
@click.pass_obj
def done(obj: dict, todo_id: str, token: str):
    """Mark a todo as completed."""
    _run(_update_impl(obj["api_url"], token, todo_id, {"completed": True}))


@main.command()
@click.argument("todo_id")
@token_option
@click.pass_obj
def rm(obj: dict, todo_id: str, token: str):
    """Delete a todo permanently."""
    _run(_rm_impl(obj["api_url"], token, todo_id))


async def _rm_impl(api_url: str, token: str, todo_id: str):
    async with _client(api_url) as c:
        await c.delete_todo(token, todo_id)
    click.echo(f"Deleted {todo_id}")


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@main.command("admin-users")
@token_option
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def admin_users(obj: dict, token: str, as_json: bool):
    """List every user with their todos (admin token required)."""
    _run(_admin_users_impl(obj["api_url"], token, as_json))


async def _admin_users_impl(api_url: str, token: str, as_json: bool):
    async with _client(api_url) as c:
        users = await c.list_users_with_todos(token)

    if as_json:
        click.echo(_pretty_json(users))
        return
    if not users:
        click.echo("No users.")
        return

    for u in users:
        open_count = sum(1 for t in u["todos"] if not t["completed"])
        click.secho(f"{u['username']} <{u['email']}>  {len(u['todos'])} todos, {open_count} open", bold=True)
        for t in u["todos"]:
            mark = "x" if t["completed"] else " "
            prio = click.style(t["priority"].ljust(6), fg=_priority_color(t["priority"]))
            click.echo(f"  [{mark}] {prio} {t['text'][:60]}")


if __name__ == "__main__":
    main()
