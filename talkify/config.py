"""
config.py
----------

Loads the Talkify API settings from environment variables using python-dotenv.
This module centralizes database connection parameters, the encryption key
file location, HTTP server options and logging settings.

Every value is validated by pydantic; anything unparsable raises ConfigError,
which aborts startup.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is invalid."""


# ======================================================
# Database
# ======================================================
class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(5432, gt=0, lt=65536)
    user: str = "talkify_user"
    password: str = "talkify_password"
    dbname: str = "talkify_db"
    sslmode: str = "disable"
    url: Optional[str] = None
    pool_size: int = Field(10, gt=0)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value):
        if value is not None:
            try:
                make_url(value)
            except ArgumentError as e:
                raise ValueError(f"not a database URL: {e}") from e
        return value

    def _url(self) -> URL:
        if self.url:
            return make_url(self.url)
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.dbname,
            query={"sslmode": self.sslmode},
        )

    def dsn(self) -> str:
        """Connection string handed to SQLAlchemy. DATABASE_URL wins when set."""
        return self._url().render_as_string(hide_password=False)

    def masked_dsn(self) -> str:
        """Same as dsn() but safe for logs."""
        return self._url().render_as_string(hide_password=True)


# ======================================================
# Encryption
# ======================================================
class EncryptionConfig(BaseModel):
    enabled: bool = True
    key_file: str = "keys/encryption.key"


# ======================================================
# HTTP server
# ======================================================
class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(8080, gt=0, lt=65536)
    cors_origins: List[str] = ["http://localhost:5173"]
    environment: str = "development"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def development(self) -> bool:
        return self.environment.lower() == "development"


class LoggingConfig(BaseModel):
    level: Optional[str] = None
    directory: Optional[str] = None


class Config(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# Environment variable -> (section, field)
ENV_MAPPING = {
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_USER": ("database", "user"),
    "DB_PASSWORD": ("database", "password"),
    "DB_NAME": ("database", "dbname"),
    "DB_SSLMODE": ("database", "sslmode"),
    "DATABASE_URL": ("database", "url"),
    "DB_POOL_SIZE": ("database", "pool_size"),
    "ENCRYPTION_ENABLED": ("encryption", "enabled"),
    "ENCRYPTION_KEY_FILE": ("encryption", "key_file"),
    "HOST": ("server", "host"),
    "PORT": ("server", "port"),
    "CORS_ORIGINS": ("server", "cors_origins"),
    "APP_ENV": ("server", "environment"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_DIR": ("logging", "directory"),
}


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Builds a Config from the environment.

    Values from a .env file are loaded first without overriding variables
    already present in the process environment. Empty variables count as unset.
    """
    load_dotenv(env_file, override=False)

    sections = {"database": {}, "encryption": {}, "server": {}, "logging": {}}
    for variable, (section, field) in ENV_MAPPING.items():
        value = os.getenv(variable)
        if value is None or value.strip() == "":
            continue
        sections[section][field] = value.strip()

    try:
        return Config(**sections)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
