"""
connection.py
--------------

Manages the pooled connection to the relational database with SQLAlchemy.

connect() builds the engine from a DSN and verifies it with a round trip, so an
unreachable server or bad credentials fail at startup rather than on the first
request. The returned Database is held for the whole process lifetime and
released with close() (or by using it as a context manager).
"""

from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from talkify.utils.logger_config import database_logger, log_error

Base = declarative_base()


class DatabaseConnectionError(Exception):
    """Raised when the database cannot be reached."""


# ======================================================
# Database handle
# ======================================================
class Database:
    """Engine plus session factory shared by every request."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

    def session(self) -> Iterator[Session]:
        """Provides a new session and always closes it (FastAPI dependency)."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            log_error(database_logger, "[PING_FAILED] Database unreachable", e)
            return False

    def ensure_schema(self) -> None:
        """Creates every table declared on Base that does not exist yet."""
        from talkify.database import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        database_logger.debug("[SCHEMA_OK] Tables verified")

    def close(self) -> None:
        self.engine.dispose()
        database_logger.info("[POOL_CLOSED] Database connections released")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ======================================================
# Connector
# ======================================================
def connect(dsn: str, pool_size: int = 10) -> Database:
    """
    Opens a pooled connection for the given DSN and checks it with SELECT 1.

    Raises:
        DatabaseConnectionError: the DSN is invalid, the server is unreachable
            or the credentials are rejected.
    """
    try:
        url = make_url(dsn)
        if url.get_backend_name() == "sqlite":
            engine = create_engine(url, connect_args={"check_same_thread": False}, future=True)
        else:
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=pool_size,
                pool_pre_ping=True,
                future=True,
            )
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseConnectionError(f"Invalid database configuration: {e}") from e

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        engine.dispose()
        raise DatabaseConnectionError(f"Cannot reach database: {e}") from e

    return Database(engine)
