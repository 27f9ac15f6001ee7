"""In-place upgrades for SQLite databases created by earlier releases."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Additive only: columns and indexes. Fresh databases come from create_all.

HARDWARE_COLUMNS: dict[str, str] = {
    "holder_id": "INTEGER",
    "functional": "INTEGER DEFAULT 1 NOT NULL",
    "updated_at": "TEXT",
}

SPONSOR_TIER_COLUMNS: dict[str, str] = {
    "image_width": "INTEGER DEFAULT 0 NOT NULL",
    "image_height": "INTEGER DEFAULT 0 NOT NULL",
}

AUDIT_LOG_COLUMNS: dict[str, str] = {
    "actor_user_id": "INTEGER",
}


def _column_names(engine: Engine, table: str) -> set[str]:
    """Fetch SQLite's description of a table and keep only the column names."""

    with engine.connect() as conn:
        rows = conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()
    return {row["name"] for row in rows}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    """ALTER TABLE ADD COLUMN helper."""
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    """Build an index only if it hasn't already been defined."""

    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def _ensure_columns(engine: Engine, table: str, needed: dict[str, str]) -> list[str]:
    existing = _column_names(engine, table)
    if not existing:
        # Table absent -> nothing to migrate; create_all builds the fresh schema.
        return []
    added: list[str] = []
    for name, dtype in needed.items():
        if name not in existing:
            _add_column_sqlite(engine, table, f"{name} {dtype}")
            added.append(name)
    return added


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite schema up-to-date with the models."""

    if engine.dialect.name != "sqlite":
        return

    for table, needed in (
        ("hardware", HARDWARE_COLUMNS),
        ("sponsor_tiers", SPONSOR_TIER_COLUMNS),
        ("audit_log", AUDIT_LOG_COLUMNS),
    ):
        added = _ensure_columns(engine, table, needed)
        if added:
            logger.info("schema.columns_added", extra={"extra_data": {"table": table, "columns": added}})

    if _column_names(engine, "hardware"):
        # Rows written before updated_at existed inherit their creation time.
        with engine.begin() as conn:
            conn.execute(text("UPDATE hardware SET updated_at = created_at WHERE updated_at IS NULL"))

    if _column_names(engine, "audit_log"):
        _create_index_if_not_exists(engine, "audit_log", "ix_audit_log_entity_created", ["entity_type", "created_at"])
