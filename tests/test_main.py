"""
test_main.py
-------------

Startup sequence of talkify.main.main(): the listener only opens when every
step succeeded, and any failure exits with status 1.
"""

import base64
import os

import pytest
from fastapi.testclient import TestClient

from talkify import main as talkify_main


@pytest.fixture
def served(monkeypatch):
    """Replaces uvicorn.run and records every listener that would have opened."""
    calls = []

    def fake_run(app, **kwargs):
        calls.append({"app": app, **kwargs})

    monkeypatch.setattr(talkify_main, "init_logger", lambda *args, **kwargs: None)
    monkeypatch.setattr(talkify_main.uvicorn, "run", fake_run)
    return calls


@pytest.fixture
def valid_env(monkeypatch, database_url, key_file):
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", key_file)


def run_main_expecting_exit():
    with pytest.raises(SystemExit) as exc:
        talkify_main.main()
    return exc.value.code


def test_listens_on_8080_by_default(served, valid_env):
    talkify_main.main()

    assert len(served) == 1
    assert served[0]["port"] == 8080
    assert served[0]["host"] == "0.0.0.0"
    assert served[0]["timeout_graceful_shutdown"] == 5


def test_port_from_environment(served, valid_env, monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    talkify_main.main()

    assert served[0]["port"] == 9090


def test_served_app_is_wired(served, valid_env):
    talkify_main.main()

    # main() released the pool on exit; the engine reconnects on demand
    with TestClient(served[0]["app"]) as client:
        assert client.get("/swagger/index.html").status_code == 200
        assert client.get("/api/health").json()["database"] == "up"


def test_unreachable_database_is_fatal(served, monkeypatch, key_file):
    monkeypatch.setenv("DATABASE_URL", "sqlite:////nonexistent/directory/talkify.db")
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", key_file)

    assert run_main_expecting_exit() == 1
    assert served == []


def test_unreachable_postgres_is_fatal(served, monkeypatch, key_file):
    monkeypatch.setenv("DB_HOST", "127.0.0.1")
    monkeypatch.setenv("DB_PORT", "1")
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", key_file)

    assert run_main_expecting_exit() == 1
    assert served == []


def test_missing_key_file_is_fatal(served, monkeypatch, database_url, tmp_path):
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", str(tmp_path / "missing.key"))

    assert run_main_expecting_exit() == 1
    assert served == []


@pytest.mark.parametrize("content", [
    "not base64 at all!!",
    base64.b64encode(os.urandom(16)).decode(),
    "",
])
def test_malformed_key_file_is_fatal(served, monkeypatch, database_url, tmp_path, content):
    path = tmp_path / "bad.key"
    path.write_text(content)
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", str(path))

    assert run_main_expecting_exit() == 1
    assert served == []


def test_encryption_disabled_needs_no_key(served, monkeypatch, database_url, tmp_path):
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENCRYPTION_ENABLED", "false")
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", str(tmp_path / "missing.key"))

    talkify_main.main()

    assert len(served) == 1


def test_invalid_config_is_fatal(served, monkeypatch):
    monkeypatch.setenv("PORT", "eighty")

    assert run_main_expecting_exit() == 1
    assert served == []


def test_port_that_cannot_be_bound_is_fatal(monkeypatch, valid_env):
    def failing_run(app, **kwargs):
        raise SystemExit(3)

    monkeypatch.setattr(talkify_main, "init_logger", lambda *args, **kwargs: None)
    monkeypatch.setattr(talkify_main.uvicorn, "run", failing_run)

    assert run_main_expecting_exit() == 1


def test_fatal_is_logged(served, monkeypatch, database_url, tmp_path, caplog):
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("ENCRYPTION_KEY_FILE", str(tmp_path / "missing.key"))

    run_main_expecting_exit()

    critical = [r for r in caplog.records if r.levelname == "CRITICAL"]
    assert critical
    assert "Failed to initialize key manager" in critical[0].getMessage()
    assert "keyFile=" in critical[0].getMessage()
