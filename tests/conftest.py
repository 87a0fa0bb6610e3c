"""
conftest.py
------------

Shared fixtures: a file-backed SQLite database, a temporary key file and a
TestClient around the full application. No PostgreSQL server is needed.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from talkify.config import ENV_MAPPING
from talkify.crypto import EncryptionManager, KeyManager
from talkify.database.connection import connect
from talkify.main import create_app
from talkify.utils.logger_config import APP_LOGGER, CRYPTO_LOGGER, DATABASE_LOGGER, REQUEST_LOGGER


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keeps the developer's shell variables out of every test."""
    for variable in ENV_MAPPING:
        monkeypatch.delenv(variable, raising=False)


@pytest.fixture(autouse=True)
def restore_loggers():
    """Undoes init_logger() so later tests can still capture records."""
    loggers = [logging.getLogger(name) for name in (APP_LOGGER, REQUEST_LOGGER, DATABASE_LOGGER, CRYPTO_LOGGER)]
    saved = [(logger, list(logger.handlers), logger.propagate, logger.level) for logger in loggers]
    yield
    for logger, handlers, propagate, level in saved:
        logger.handlers = handlers
        logger.propagate = propagate
        logger.setLevel(level)


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "keys" / "encryption.key"
    KeyManager.generate(str(path))
    return str(path)


@pytest.fixture
def encryptor(key_file):
    return EncryptionManager(KeyManager(key_file).get_key())


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'talkify.db'}"


@pytest.fixture
def database(database_url):
    db = connect(database_url)
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def session(database):
    db = database.SessionLocal()
    yield db
    db.close()


@pytest.fixture
def app(database, encryptor):
    return create_app(database, encryptor)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client):
    """Creates a user through the API and returns its JSON."""
    def _make(username, **overrides):
        payload = {
            "username": username,
            "email": f"{username}@talkify.test",
            "phone": "+5511999990000",
            "password": "s3cret-pass",
        }
        payload.update(overrides)
        response = client.post("/api/users", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


def as_user(user) -> dict:
    return {"X-User-ID": user["id"]}
