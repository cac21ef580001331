"""SQLite connection and schema management.

Opens the single connection used by the storage gateway and creates the
schema idempotently.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/trainer.db")


def open_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Open a connection with the settings the gateway relies on.

    The connection runs in autocommit mode (``isolation_level=None``) so that
    transactions are always explicit, and may be used from any thread because
    the gateway serializes access with its own lock.

    Args:
        db_path: Path to database file, or ``":memory:"``. Defaults to db/trainer.db

    Returns:
        SQLite connection with row factory set to sqlite3.Row
    """
    if db_path is None:
        db_path = DEFAULT_DB_PATH

    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(db_path),
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)

    logger.debug("database.opened", path=str(db_path))
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Catalog (immutable after seeding)
        CREATE TABLE IF NOT EXISTS skills (
            id INTEGER PRIMARY KEY,
            name TEXT UNIQUE NOT NULL
        );

        CREATE TABLE IF NOT EXISTS skill_prereqs (
            skill_id INTEGER NOT NULL REFERENCES skills(id),
            prereq_id INTEGER NOT NULL REFERENCES skills(id),
            PRIMARY KEY (skill_id, prereq_id)
        );

        CREATE TABLE IF NOT EXISTS problems (
            id INTEGER PRIMARY KEY,
            slug TEXT UNIQUE NOT NULL,
            title TEXT NOT NULL,
            url TEXT,
            difficulty TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS problem_skills (
            problem_id INTEGER NOT NULL REFERENCES problems(id),
            skill_id INTEGER NOT NULL REFERENCES skills(id),
            PRIMARY KEY (problem_id, skill_id)
        );

        -- Alternatives: same concept, different exercise. An alternative id
        -- may also appear in problems with its own tags.
        CREATE TABLE IF NOT EXISTS alternatives (
            id INTEGER PRIMARY KEY,
            parent_id INTEGER NOT NULL REFERENCES problems(id),
            title TEXT NOT NULL,
            url TEXT,
            difficulty TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS tracks (
            id INTEGER PRIMARY KEY,
            name TEXT UNIQUE NOT NULL
        );

        CREATE TABLE IF NOT EXISTS track_problems (
            track_id INTEGER NOT NULL REFERENCES tracks(id),
            problem_id INTEGER NOT NULL REFERENCES problems(id),
            PRIMARY KEY (track_id, problem_id)
        );

        -- Learner state
        CREATE TABLE IF NOT EXISTS skill_state (
            skill_id INTEGER PRIMARY KEY REFERENCES skills(id),
            mastery REAL NOT NULL DEFAULT 0.0,
            attempts INTEGER NOT NULL DEFAULT 0
        );

        -- Append-only; problem_id is the submitted id (may be an alternative)
        CREATE TABLE IF NOT EXISTS attempts (
            id INTEGER PRIMARY KEY,
            problem_id INTEGER NOT NULL,
            time_minutes REAL NOT NULL,
            solved INTEGER NOT NULL,
            read_solution INTEGER NOT NULL,
            revealed_skills INTEGER NOT NULL DEFAULT 0,
            timestamp INTEGER NOT NULL
        );

        -- Keyed by canonical problem id only
        CREATE TABLE IF NOT EXISTS problem_state (
            problem_id INTEGER PRIMARY KEY,
            ease_factor REAL NOT NULL DEFAULT 2.5,
            interval_days REAL NOT NULL DEFAULT 1.0,
            next_review_ts INTEGER NOT NULL
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_attempts_problem ON attempts(problem_id);
        CREATE INDEX IF NOT EXISTS idx_alternatives_parent ON alternatives(parent_id);
        CREATE INDEX IF NOT EXISTS idx_problem_state_due ON problem_state(next_review_ts);
        """
    )
