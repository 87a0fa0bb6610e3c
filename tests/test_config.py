"""
test_config.py
---------------

Environment parsing, defaults and DSN handling of talkify.config.
"""

import pytest

from talkify.config import ConfigError, load_config


def test_defaults():
    config = load_config()
    assert config.server.port == 8080
    assert config.server.host == "0.0.0.0"
    assert config.server.cors_origins == ["http://localhost:5173"]
    assert config.server.development
    assert config.database.port == 5432
    assert config.encryption.enabled
    assert config.encryption.key_file == "keys/encryption.key"


def test_dsn_is_built_from_parts(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "6543")
    monkeypatch.setenv("DB_USER", "chat")
    monkeypatch.setenv("DB_PASSWORD", "p@ss:word")
    monkeypatch.setenv("DB_NAME", "chatdb")
    monkeypatch.setenv("DB_SSLMODE", "require")

    dsn = load_config().database.dsn()

    assert dsn.startswith("postgresql+psycopg2://chat:")
    assert "@db.internal:6543/chatdb" in dsn
    assert "sslmode=require" in dsn
    assert "p@ss:word" not in dsn  # special characters are escaped


def test_masked_dsn_hides_password(monkeypatch):
    monkeypatch.setenv("DB_PASSWORD", "topsecret")
    config = load_config()
    assert "topsecret" in config.database.dsn()
    assert "topsecret" not in config.database.masked_dsn()
    assert "***" in config.database.masked_dsn()


def test_database_url_wins(monkeypatch, tmp_path):
    url = f"sqlite:///{tmp_path / 'x.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("DB_HOST", "ignored")
    assert load_config().database.dsn() == url


def test_port_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9090")
    assert load_config().server.port == 9090


def test_cors_origins_are_split(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
    assert load_config().server.cors_origins == ["http://a.test", "http://b.test"]


def test_empty_variable_counts_as_unset(monkeypatch):
    monkeypatch.setenv("PORT", "  ")
    assert load_config().server.port == 8080


def test_encryption_can_be_disabled(monkeypatch):
    monkeypatch.setenv("ENCRYPTION_ENABLED", "false")
    assert load_config().encryption.enabled is False


def test_production_mode(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert load_config().server.development is False


@pytest.mark.parametrize("variable, value", [
    ("PORT", "not-a-number"),
    ("PORT", "70000"),
    ("DB_PORT", "0"),
    ("DB_POOL_SIZE", "-1"),
    ("ENCRYPTION_ENABLED", "maybe"),
    ("DATABASE_URL", "definitely not a url"),
])
def test_invalid_values_raise_config_error(monkeypatch, variable, value):
    monkeypatch.setenv(variable, value)
    with pytest.raises(ConfigError) as exc:
        load_config()
    assert "Invalid configuration" in str(exc.value)


def test_env_file_does_not_override_process_environment(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("PORT=7070\nDB_NAME=from_file\n")
    monkeypatch.setenv("PORT", "9090")
    # load_dotenv writes into os.environ; let monkeypatch clean it up
    monkeypatch.setenv("DB_NAME", "")
    monkeypatch.delenv("DB_NAME")

    config = load_config(str(env_file))

    assert config.server.port == 9090
    assert config.database.dbname == "from_file"
