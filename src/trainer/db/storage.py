"""Storage gateway.

Every read and write the scheduling core performs goes through a
:class:`Storage` instance. It owns one SQLite connection guarded by a
re-entrant lock, so a single logical session operates on the store at a time.

Skill-id filters are passed as a single JSON array parameter and expanded
with ``json_each`` inside the query, so the SQL text never depends on the
number of ids.
"""

from __future__ import annotations

import json
import random
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import structlog

from trainer.core.models import (
    AttemptLog,
    AttemptRecord,
    Difficulty,
    Problem,
    ProblemRepetitionState,
    Skill,
    SkillState,
)
from trainer.db.database import open_connection

logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """A persistence operation failed.

    The message is the underlying driver message, unchanged.
    """

    pass


class Storage:
    """SQLite-backed storage gateway.

    Example:
        with Storage(Path("db/trainer.db")) as storage:
            with storage.transaction():
                storage.append_attempt(log, timestamp=now)
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        connection: sqlite3.Connection | None = None,
    ) -> None:
        try:
            self._conn = connection or open_connection(db_path)
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        self._lock = threading.RLock()
        self._tx_depth = 0
        self.db_path = str(db_path) if db_path is not None else None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed gateway calls atomically.

        Holds the lock for the whole block. Nested use joins the outer
        transaction; only the outermost block commits or rolls back.
        """
        with self._lock:
            if self._tx_depth > 0:
                self._tx_depth += 1
                try:
                    yield
                finally:
                    self._tx_depth -= 1
                return

            self._execute("BEGIN IMMEDIATE")
            self._tx_depth = 1
            try:
                yield
            except BaseException:
                self._tx_depth = 0
                self._rollback()
                raise
            self._tx_depth = 0
            try:
                self._execute("COMMIT")
            except StorageError:
                self._rollback()
                raise

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning("storage.rollback_failed", error=str(e))
        else:
            logger.debug("storage.rolled_back")

    # -------------------------------------------------------------------------
    # Low-level helpers
    # -------------------------------------------------------------------------

    def _execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, tuple(params))
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def _fetchone(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._execute(sql, params).fetchall()

    # -------------------------------------------------------------------------
    # Catalog seeding
    # -------------------------------------------------------------------------

    def is_empty(self) -> bool:
        """True when no problems have been seeded yet."""
        row = self._fetchone("SELECT count(*) AS n FROM problems")
        return row["n"] == 0

    def insert_skill(self, name: str, skill_id: int | None = None) -> int:
        cursor = self._execute(
            "INSERT INTO skills (id, name) VALUES (?, ?)", (skill_id, name)
        )
        return skill_id if skill_id is not None else cursor.lastrowid

    def insert_prerequisite(self, skill_id: int, prereq_id: int) -> None:
        self._execute(
            "INSERT OR IGNORE INTO skill_prereqs (skill_id, prereq_id) VALUES (?, ?)",
            (skill_id, prereq_id),
        )

    def insert_track(self, name: str) -> int:
        cursor = self._execute("INSERT INTO tracks (name) VALUES (?)", (name,))
        return cursor.lastrowid

    def insert_problem(
        self,
        problem_id: int,
        slug: str,
        title: str,
        url: str,
        difficulty: str,
        skill_ids: Iterable[int] = (),
        track_id: int | None = None,
    ) -> None:
        with self.transaction():
            self._execute(
                "INSERT INTO problems (id, slug, title, url, difficulty) VALUES (?, ?, ?, ?, ?)",
                (problem_id, slug, title, url, difficulty),
            )
            for sid in skill_ids:
                self._execute(
                    "INSERT OR IGNORE INTO problem_skills (problem_id, skill_id) VALUES (?, ?)",
                    (problem_id, sid),
                )
            if track_id is not None:
                self._execute(
                    "INSERT OR IGNORE INTO track_problems (track_id, problem_id) VALUES (?, ?)",
                    (track_id, problem_id),
                )

    def insert_alternative(
        self,
        alternative_id: int,
        parent_id: int,
        title: str,
        url: str,
        difficulty: str,
    ) -> None:
        self._execute(
            "INSERT INTO alternatives (id, parent_id, title, url, difficulty) VALUES (?, ?, ?, ?, ?)",
            (alternative_id, parent_id, title, url, difficulty),
        )

    def init_skill_states(self) -> None:
        """Create a zero state row for every skill lacking one."""
        self._execute("INSERT OR IGNORE INTO skill_state (skill_id) SELECT id FROM skills")

    # -------------------------------------------------------------------------
    # Skills
    # -------------------------------------------------------------------------

    def list_skill_ids(self) -> list[int]:
        return [row["id"] for row in self._fetchall("SELECT id FROM skills ORDER BY id")]

    def list_prerequisite_edges(self) -> list[tuple[int, int]]:
        """All (skill_id, prereq_id) edges of the DAG."""
        rows = self._fetchall("SELECT skill_id, prereq_id FROM skill_prereqs")
        return [(row["skill_id"], row["prereq_id"]) for row in rows]

    def list_skills(self) -> list[Skill]:
        rows = self._fetchall("SELECT id, name FROM skills ORDER BY id")
        prereqs: dict[int, set[int]] = {}
        for skill_id, prereq_id in self.list_prerequisite_edges():
            prereqs.setdefault(skill_id, set()).add(prereq_id)
        return [
            Skill(
                id=row["id"],
                name=row["name"],
                prerequisites=frozenset(prereqs.get(row["id"], ())),
            )
            for row in rows
        ]

    def get_skill_state(self, skill_id: int) -> SkillState:
        """Mastery state for a skill; a missing row reads as zero."""
        row = self._fetchone(
            "SELECT mastery, attempts FROM skill_state WHERE skill_id = ?", (skill_id,)
        )
        if row is None:
            return SkillState(skill_id=skill_id)
        return SkillState(skill_id=skill_id, mastery=row["mastery"], attempts=row["attempts"])

    def list_skill_states(self) -> dict[int, SkillState]:
        rows = self._fetchall("SELECT skill_id, mastery, attempts FROM skill_state")
        return {
            row["skill_id"]: SkillState(
                skill_id=row["skill_id"],
                mastery=row["mastery"],
                attempts=row["attempts"],
            )
            for row in rows
        }

    def save_skill_state(self, state: SkillState) -> None:
        self._execute(
            """
            INSERT INTO skill_state (skill_id, mastery, attempts) VALUES (?, ?, ?)
            ON CONFLICT(skill_id) DO UPDATE SET
                mastery = excluded.mastery,
                attempts = excluded.attempts
            """,
            (state.skill_id, state.mastery, state.attempts),
        )

    # -------------------------------------------------------------------------
    # Problems and alternatives
    # -------------------------------------------------------------------------

    def get_problem(self, problem_id: int) -> Problem | None:
        row = self._fetchone(
            "SELECT id, title, url, difficulty FROM problems WHERE id = ?", (problem_id,)
        )
        if row is None:
            return None
        return self._row_to_problem(row, self.get_problem_skill_ids(problem_id))

    def get_alternative(self, alternative_id: int) -> Problem | None:
        row = self._fetchone(
            "SELECT id, parent_id, title, url, difficulty FROM alternatives WHERE id = ?",
            (alternative_id,),
        )
        if row is None:
            return None
        return self._row_to_problem(row, [], parent_id=row["parent_id"])

    def get_problem_skill_ids(self, problem_id: int) -> list[int]:
        rows = self._fetchall(
            "SELECT skill_id FROM problem_skills WHERE problem_id = ? ORDER BY skill_id",
            (problem_id,),
        )
        return [row["skill_id"] for row in rows]

    def get_problem_metadata(self, problem_id: int) -> tuple[Difficulty, list[int]] | None:
        """Difficulty and tagged skill ids, or None if not a problem row."""
        row = self._fetchone("SELECT difficulty FROM problems WHERE id = ?", (problem_id,))
        if row is None:
            return None
        return Difficulty.parse(row["difficulty"]), self.get_problem_skill_ids(problem_id)

    def resolve_parent_id(self, problem_id: int) -> tuple[int, bool]:
        """Return (canonical_id, is_alternative) for a possibly-alternative id."""
        row = self._fetchone("SELECT parent_id FROM alternatives WHERE id = ?", (problem_id,))
        if row is None:
            return problem_id, False
        return row["parent_id"], True

    def list_alternatives(self, parent_id: int) -> list[Problem]:
        rows = self._fetchall(
            "SELECT id, parent_id, title, url, difficulty FROM alternatives "
            "WHERE parent_id = ? ORDER BY id",
            (parent_id,),
        )
        return [self._row_to_problem(row, [], parent_id=row["parent_id"]) for row in rows]

    def get_random_alternative(self, parent_id: int, rng: random.Random) -> Problem | None:
        """Pick one alternative of a parent uniformly at random."""
        alternatives = self.list_alternatives(parent_id)
        if not alternatives:
            return None
        return rng.choice(alternatives)

    def get_skill_names(self, problem_id: int) -> list[str]:
        rows = self._fetchall(
            """
            SELECT s.name
            FROM skills s
            JOIN problem_skills ps ON s.id = ps.skill_id
            WHERE ps.problem_id = ?
            ORDER BY s.id
            """,
            (problem_id,),
        )
        return [row["name"] for row in rows]

    def get_track_id(self, name: str) -> int | None:
        row = self._fetchone("SELECT id FROM tracks WHERE name = ?", (name,))
        return row["id"] if row else None

    # -------------------------------------------------------------------------
    # Attempts
    # -------------------------------------------------------------------------

    def append_attempt(self, log: AttemptLog, timestamp: int) -> int:
        cursor = self._execute(
            """
            INSERT INTO attempts (
                problem_id, time_minutes, solved, read_solution, revealed_skills, timestamp
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                log.problem_id,
                log.time_minutes,
                int(log.solved),
                int(log.read_solution),
                int(log.revealed_skills),
                timestamp,
            ),
        )
        logger.debug("storage.attempt_appended", attempt_id=cursor.lastrowid, problem_id=log.problem_id)
        return cursor.lastrowid

    def count_attempts(self, problem_id: int) -> int:
        row = self._fetchone(
            "SELECT count(*) AS n FROM attempts WHERE problem_id = ?", (problem_id,)
        )
        return row["n"]

    def list_attempts(self, problem_id: int | None = None) -> list[AttemptRecord]:
        if problem_id is None:
            rows = self._fetchall("SELECT * FROM attempts ORDER BY id")
        else:
            rows = self._fetchall(
                "SELECT * FROM attempts WHERE problem_id = ? ORDER BY id", (problem_id,)
            )
        return [
            AttemptRecord(
                id=row["id"],
                problem_id=row["problem_id"],
                time_minutes=row["time_minutes"],
                solved=bool(row["solved"]),
                read_solution=bool(row["read_solution"]),
                revealed_skills=bool(row["revealed_skills"]),
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Repetition state
    # -------------------------------------------------------------------------

    def get_repetition_state(self, problem_id: int) -> ProblemRepetitionState | None:
        row = self._fetchone(
            "SELECT ease_factor, interval_days, next_review_ts FROM problem_state "
            "WHERE problem_id = ?",
            (problem_id,),
        )
        if row is None:
            return None
        return ProblemRepetitionState(
            problem_id=problem_id,
            ease_factor=row["ease_factor"],
            interval_days=row["interval_days"],
            next_review_ts=row["next_review_ts"],
        )

    def save_repetition_state(self, state: ProblemRepetitionState) -> None:
        self._execute(
            """
            INSERT INTO problem_state (problem_id, ease_factor, interval_days, next_review_ts)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(problem_id) DO UPDATE SET
                ease_factor = excluded.ease_factor,
                interval_days = excluded.interval_days,
                next_review_ts = excluded.next_review_ts
            """,
            (state.problem_id, state.ease_factor, state.interval_days, state.next_review_ts),
        )

    def list_repetition_states(self) -> list[tuple[ProblemRepetitionState, str]]:
        """All repetition states with the problem title, earliest due first."""
        rows = self._fetchall(
            """
            SELECT ps.problem_id, ps.ease_factor, ps.interval_days, ps.next_review_ts,
                   COALESCE(p.title, '') AS title
            FROM problem_state ps
            LEFT JOIN problems p ON ps.problem_id = p.id
            ORDER BY ps.next_review_ts ASC, ps.problem_id ASC
            """
        )
        return [
            (
                ProblemRepetitionState(
                    problem_id=row["problem_id"],
                    ease_factor=row["ease_factor"],
                    interval_days=row["interval_days"],
                    next_review_ts=row["next_review_ts"],
                ),
                row["title"],
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Candidate queries
    # -------------------------------------------------------------------------

    def find_due_review(self, now_ts: int) -> Problem | None:
        """The most overdue tracked problem, or None."""
        row = self._fetchone(
            """
            SELECT p.id, p.title, p.url, p.difficulty
            FROM problem_state ps
            JOIN problems p ON ps.problem_id = p.id
            WHERE ps.next_review_ts <= ?
            ORDER BY ps.next_review_ts ASC, p.id ASC
            LIMIT 1
            """,
            (now_ts,),
        )
        if row is None:
            return None
        return self._row_to_problem(row, self.get_problem_skill_ids(row["id"]))

    def list_discovery_candidates(
        self, track_id: int, skill_ids: Iterable[int]
    ) -> list[Problem]:
        """Unseen track problems whose tags all lie inside ``skill_ids``.

        Excludes problems with repetition state, alternatives of tracked
        parents, and parents of attempted alternatives.
        """
        skill_filter = json.dumps(sorted(set(skill_ids)))
        rows = self._fetchall(
            """
            SELECT p.id, p.title, p.url, p.difficulty
            FROM problems p
            JOIN track_problems tp ON p.id = tp.problem_id
            WHERE tp.track_id = ?
            AND EXISTS (SELECT 1 FROM problem_skills ps WHERE ps.problem_id = p.id)
            AND NOT EXISTS (
                SELECT 1 FROM problem_skills ps
                WHERE ps.problem_id = p.id
                AND ps.skill_id NOT IN (SELECT value FROM json_each(?))
            )
            AND p.id NOT IN (SELECT problem_id FROM problem_state)
            AND p.id NOT IN (
                SELECT id FROM alternatives
                WHERE parent_id IN (SELECT problem_id FROM problem_state)
            )
            AND p.id NOT IN (
                SELECT parent_id FROM alternatives
                WHERE id IN (SELECT problem_id FROM attempts)
            )
            ORDER BY p.id
            """,
            (track_id, skill_filter),
        )
        return [self._row_to_problem(row, self.get_problem_skill_ids(row["id"])) for row in rows]

    def list_cram_candidates(
        self, track_id: int, skill_ids: Iterable[int]
    ) -> list[tuple[Problem, float]]:
        """Track problems tagged with at least one of ``skill_ids``.

        Each problem comes with the lowest mastery among its matched skills.
        """
        skill_filter = json.dumps(sorted(set(skill_ids)))
        rows = self._fetchall(
            """
            SELECT p.id, p.title, p.url, p.difficulty,
                   MIN(COALESCE(ss.mastery, 0.0)) AS weakest
            FROM problems p
            JOIN track_problems tp ON p.id = tp.problem_id
            JOIN problem_skills ps ON p.id = ps.problem_id
            LEFT JOIN skill_state ss ON ps.skill_id = ss.skill_id
            WHERE tp.track_id = ?
            AND ps.skill_id IN (SELECT value FROM json_each(?))
            GROUP BY p.id
            ORDER BY p.id
            """,
            (track_id, skill_filter),
        )
        return [
            (self._row_to_problem(row, self.get_problem_skill_ids(row["id"])), row["weakest"])
            for row in rows
        ]

    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_problem(
        row: sqlite3.Row, skill_ids: list[int], parent_id: int | None = None
    ) -> Problem:
        """Convert database row to Problem."""
        return Problem(
            id=row["id"],
            title=row["title"],
            url=row["url"] or "",
            difficulty=row["difficulty"],
            skill_ids=skill_ids,
            parent_id=parent_id,
        )
