"""structlog configuration."""

import json

import structlog

from tasktrack.logging_setup import configure_logging


def test_json_logs_include_bound_request_id(capsys):
    configure_logging("DEBUG", json=True)
    try:
        structlog.contextvars.bind_contextvars(request_id="req-1")
        structlog.get_logger().info("todo.created", todo_id="abc")
        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "todo.created"
        assert event["request_id"] == "req-1"
        assert event["todo_id"] == "abc"
        assert event["level"] == "info"
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()


def test_level_filtering(capsys):
    configure_logging("WARNING")
    try:
        structlog.get_logger().info("quiet")
        structlog.get_logger().warning("loud")
        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out
    finally:
        structlog.reset_defaults()


def test_unknown_level_falls_back_to_info(capsys):
    configure_logging("chatty")
    try:
        structlog.get_logger().info("visible")
        assert "visible" in capsys.readouterr().out
    finally:
        structlog.reset_defaults()
