"""
Decorator that guarantees a rollback when a database operation fails.

The wrapped function receives the SQLAlchemy session as its first argument
('db'). If anything raises while it runs, the session is rolled back, the
failure is logged and the exception is re-raised unchanged.
"""

import functools

from talkify.utils.logger_config import database_logger


def safe_db_operation(func):
    """Decorator ensuring automatic rollback on error."""
    @functools.wraps(func)
    def wrapper(db, *args, **kwargs):
        try:
            return func(db, *args, **kwargs)
        except Exception as e:
            database_logger.warning(f"[ROLLBACK] {func.__name__} failed: {e}")
            db.rollback()
            raise
    return wrapper
