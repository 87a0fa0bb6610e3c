"""
init_db.py
-----------

Initializes or updates the Talkify database schema.

Features:
- Creates all tables declared in Base if missing.
- Leaves existing tables and data untouched.
- Allows full reset (drop and recreate) via --reset flag.
"""

import sys
from datetime import datetime, timezone

from sqlalchemy import inspect

from talkify.config import ConfigError, load_config
from talkify.database import models  # noqa: F401
from talkify.database.connection import Base, Database, DatabaseConnectionError, connect
from talkify.utils.logger_config import init_logger


def recreate_database(database: Database) -> None:
    """Drops every Talkify table and creates them again."""
    Base.metadata.drop_all(bind=database.engine)
    print(f"🧹 Old tables dropped at {datetime.now(timezone.utc)}")
    Base.metadata.create_all(bind=database.engine)
    print(f"✅ Fresh schema created at {datetime.now(timezone.utc)}")


def update_schema(database: Database) -> list[str]:
    """Creates missing tables without touching data; returns the table names."""
    database.ensure_schema()
    tables = inspect(database.engine).get_table_names()
    print(f"🔧 Schema verified, existing tables: {tables}")
    return tables


def main(argv=None) -> None:
    init_logger()
    args = sys.argv[1:] if argv is None else argv
    reset_flag = "--reset" in args

    try:
        config = load_config()
        database = connect(config.database.dsn(), config.database.pool_size)
    except (ConfigError, DatabaseConnectionError) as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1)

    with database:
        print(f"📦 Target database: {config.database.masked_dsn()}")
        if reset_flag:
            print("♻️  Full reset requested. Recreating schema...")
            recreate_database(database)
        else:
            update_schema(database)

        print("📋 Final structure:", inspect(database.engine).get_table_names())


if __name__ == "__main__":
    main()
