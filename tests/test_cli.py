# tests/test_cli.py
from __future__ import annotations

import logging

import pytest
from typer.testing import CliRunner

from edumanager.cli import app
from edumanager.settings import get_settings

runner = CliRunner()

PASSWORD = "pw-cli-1"


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway SQLite file with no OpenAI key."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EDUMANAGER_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'edumanager.db'}")
    for name in ("OPENAI_API_KEY", "EDUMANAGER_OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    logger = logging.getLogger("edumanager")
    handlers = list(logger.handlers)
    configured = getattr(logger, "_edumanager_configured", False)
    yield
    get_settings.cache_clear()
    for handler in logger.handlers[len(handlers):]:
        logger.removeHandler(handler)
    if not configured:
        logger.__dict__.pop("_edumanager_configured", None)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


def _invoke(*args):
    return runner.invoke(app, list(args))


def _register(email, role="admin"):
    return _invoke(
        "register", "--email", email, "--password", PASSWORD, "--full-name", "Ada Admin", "--role", role
    )


def test_init_db_then_register():
    created = _invoke("init-db")
    assert created.exit_code == 0, created.output
    assert "Database tables ensured" in created.output

    registered = _register("ada@school.edu")
    assert registered.exit_code == 0, registered.output
    assert "Registered admin" in registered.output

    duplicate = _register("ada@school.edu", role="teacher")
    assert duplicate.exit_code == 1
    assert "Registration failed" in duplicate.output


def test_report_prints_attendance_and_performance():
    _invoke("init-db")
    _register("ada@school.edu")

    result = _invoke(
        "report", "--email", "ada@school.edu", "--password", PASSWORD, "--week-of", "2024-09-11"
    )
    assert result.exit_code == 0, result.output
    assert "Attendance rate" in result.output
    assert "Week of 2024-09-11" in result.output
    assert "Performance" in result.output


def test_report_refuses_bad_credentials():
    _invoke("init-db")
    _register("ada@school.edu")

    result = _invoke("report", "--email", "ada@school.edu", "--password", "wrong")
    assert result.exit_code == 1
    assert "Sign-in failed" in result.output


def test_ask_answers_with_the_keyword_responder():
    _invoke("init-db")
    _register("ada@school.edu")

    result = _invoke(
        "ask", "What is the attendance rate?", "--email", "ada@school.edu", "--password", PASSWORD
    )
    assert result.exit_code == 0, result.output
    assert "Attendance Analysis" in result.output
