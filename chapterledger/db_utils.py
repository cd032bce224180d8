"""Database helper utilities for ensuring schema consistency."""
from __future__ import annotations

from typing import Iterable, Set

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db


def _get_column_names(table_name: str) -> Set[str]:
    inspector = inspect(db.engine)
    return {column["name"] for column in inspector.get_columns(table_name)}


def ensure_database_schema() -> None:
    """Ensure that the ``projects`` table exists with every document column.

    The check is cheap enough to run on every application start. Databases
    created before the continuity ledger was persisted get the column added
    in place; the ledger is rebuilt from chapters on the next read.
    """

    try:
        inspector = inspect(db.engine)
        table_names: Iterable[str] = inspector.get_table_names()

        if "projects" not in table_names:
            # Import locally to avoid circular import issues during application setup.
            from .models import Project  # noqa: F401

            db.create_all()
            return

        project_columns = _get_column_names("projects")
        if "continuity_ledger" not in project_columns:
            with db.engine.begin() as connection:
                connection.execute(text("ALTER TABLE projects ADD COLUMN continuity_ledger JSON"))
    except SQLAlchemyError:
        # Re-raise so the application does not continue in a partially
        # configured state.
        raise
