"""
Centralized Database Access for AMU Monitor.

Single source of truth for:
- DB path resolution
- Connection factory
- Schema convergence (delegated to schema_engine)

ALL code must use this module for DB access. No direct sqlite3.connect() elsewhere.
"""

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from lib import paths, schema, schema_engine

logger = logging.getLogger(__name__)


# ============================================================
# DB PATH RESOLUTION
# ============================================================


def get_db_path() -> Path:
    """
    Get the canonical DB path. ALL code must use this.

    Resolution order:
    1. AMU_MONITOR_DB env var (explicit override)
    2. ~/.amu_monitor/data/amu_monitor.db (default via paths.db_path())
    """
    return paths.db_path()


# ============================================================
# CONNECTION FACTORY
# ============================================================


@contextmanager
def get_connection(db_path: str | Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Get a database connection with proper setup.

    Usage:
        with get_connection() as conn:
            conn.execute(...)
    """
    path = Path(db_path) if db_path else get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


# ============================================================
# SCHEMA INTROSPECTION
# ============================================================


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists."""
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    return cursor.fetchone() is not None


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from PRAGMA user_version."""
    cursor = conn.execute("PRAGMA user_version")
    return cursor.fetchone()[0]


# ============================================================
# STARTUP ENTRY POINT
# ============================================================


def run_startup_migrations(db_path: str | Path | None = None) -> dict:
    """
    Run schema convergence. Safe to call multiple times.
    Logs what changed.
    """
    path = Path(db_path) if db_path else get_db_path()

    logger.info("Resolved DB path: %s", path)
    logger.info("Target SCHEMA_VERSION: %s", schema.SCHEMA_VERSION)

    with get_connection(path) as conn:
        version_before = get_schema_version(conn)
        results = schema_engine.converge(conn)
        results["previous_version"] = version_before

    if results.get("tables_created"):
        logger.info("Tables created: %s", results["tables_created"])
    if results.get("columns_added"):
        logger.info("Columns added: %s", results["columns_added"])
    if results.get("errors"):
        logger.warning("Convergence errors: %s", results["errors"])
    if not results.get("tables_created") and not results.get("columns_added"):
        logger.info("No changes needed, schema up to date")

    return results


def get_db_info(db_path: str | Path | None = None) -> dict:
    """DB path, size and version for health reporting."""
    path = Path(db_path) if db_path else get_db_path()
    info = {
        "resolved_db_path": str(path),
        "exists": path.exists(),
        "file_size": None,
        "sqlite_version": sqlite3.sqlite_version,
        "user_version": None,
        "target_schema_version": schema.SCHEMA_VERSION,
    }
    if path.exists():
        info["file_size"] = path.stat().st_size
        with get_connection(path) as conn:
            info["user_version"] = get_schema_version(conn)
    return info
