"""Database factory functions for creating database instances."""

import os
from typing import Optional

from settleit.config import default_db_path
from settleit.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks SETTLEIT_DB_PATH
            environment variable, then defaults to ~/.settleit/settleit.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("SETTLEIT_DB_PATH")

    if database_path is None:
        database_path = default_db_path()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url)
