"""Trainer service.

The two operations the outer surfaces call:
- next_recommendation(): skill unlock resolution + candidate selection
- submit_attempt(): attempt processing (repetition + mastery updates)

plus read-only progress views for the CLI and web API.

Usage:
    with Trainer.from_config(load_app_config()) as trainer:
        view = trainer.next_recommendation()
        result = trainer.submit_attempt(AttemptLog(problem_id=1, time_minutes=12, solved=True))
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

import structlog

from trainer.config.app_config import AppConfig
from trainer.core.attempts import AttemptOutcome, AttemptProcessor, ProblemNotFoundError
from trainer.core.models import AttemptLog, ProblemView
from trainer.core.scheduler import CandidateSelector
from trainer.core.skill_graph import SkillUnlockResolver
from trainer.db.catalog import DEFAULT_TRACK_NAME
from trainer.db.storage import Storage, StorageError

logger = structlog.get_logger(__name__)


class TrackNotFoundError(Exception):
    """The configured track does not exist (database not seeded)."""

    def __init__(self, track_name: str):
        self.track_name = track_name
        super().__init__(f"Track not found: '{track_name}'. Run 'train init' first.")


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class SubmitResult:
    """Result of attempt submission."""

    success: bool
    message: str
    outcome: AttemptOutcome | None = None
    error: Literal["not_found", "storage"] | None = None


@dataclass
class SkillProgress:
    """Progress row for one skill."""

    skill_id: int
    name: str
    mastery: float
    attempts: int
    unlocked: bool
    locked_by: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "name": self.name,
            "mastery": self.mastery,
            "attempts": self.attempts,
            "unlocked": self.unlocked,
            "locked_by": list(self.locked_by),
        }


@dataclass
class ScheduledReview:
    """Repetition state of a tracked problem."""

    problem_id: int
    title: str
    ease_factor: float
    interval_days: float
    next_review_ts: int
    due: bool


def _now() -> int:
    return int(time.time())


# =============================================================================
# SERVICE
# =============================================================================


class Trainer:
    """Recommendation and scoring engine bound to one storage gateway."""

    def __init__(
        self,
        storage: Storage,
        track_name: str = DEFAULT_TRACK_NAME,
        rng: random.Random | None = None,
        clock: Callable[[], int] = _now,
    ) -> None:
        track_id = storage.get_track_id(track_name)
        if track_id is None:
            raise TrackNotFoundError(track_name)

        self.storage = storage
        self.track_name = track_name
        self._clock = clock
        self._resolver = SkillUnlockResolver(storage)
        self._selector = CandidateSelector(storage, self._resolver, track_id, rng)
        self._processor = AttemptProcessor(storage)

    @classmethod
    def from_config(cls, config: AppConfig) -> Trainer:
        """Open the configured database and bind a trainer to it."""
        storage = Storage(config.paths.db_path)
        seed = config.scheduler.random_seed
        rng = random.Random(seed) if seed is not None else None
        try:
            return cls(storage, track_name=config.scheduler.active_track, rng=rng)
        except Exception:
            storage.close()
            raise

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> Trainer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Command surface
    # -------------------------------------------------------------------------

    def next_recommendation(self) -> ProblemView | None:
        """Recommend the next problem, or None when nothing is available.

        Raises:
            StorageError: If reading the store fails.
        """
        return self._selector.next_problem(self._clock())

    def submit_attempt(self, log: AttemptLog) -> SubmitResult:
        """Record an attempt and update repetition and mastery state.

        Failures are reported, not raised; the caller may re-issue the
        request.
        """
        try:
            outcome = self._processor.submit(log, now=self._clock())
        except ProblemNotFoundError as e:
            logger.warning("attempt.unknown_problem", problem_id=log.problem_id)
            return SubmitResult(success=False, message=str(e), error="not_found")
        except StorageError as e:
            logger.error("attempt.storage_failed", problem_id=log.problem_id, error=str(e))
            return SubmitResult(success=False, message=str(e), error="storage")

        return SubmitResult(
            success=True,
            message=f"Attempt recorded for problem {log.problem_id}",
            outcome=outcome,
        )

    # -------------------------------------------------------------------------
    # Progress views
    # -------------------------------------------------------------------------

    def skill_progress(self) -> list[SkillProgress]:
        """Mastery, attempts and unlock status for every skill."""
        skills = self.storage.list_skills()
        names = {s.id: s.name for s in skills}
        states = self.storage.list_skill_states()
        unlocked = self._resolver.unlocked_skills()

        rows = []
        for skill in skills:
            state = states.get(skill.id)
            rows.append(
                SkillProgress(
                    skill_id=skill.id,
                    name=skill.name,
                    mastery=state.mastery if state else 0.0,
                    attempts=state.attempts if state else 0,
                    unlocked=skill.id in unlocked,
                    locked_by=[
                        names[p] for p in self._resolver.locked_prerequisites(skill.id, states)
                    ],
                )
            )
        return rows

    def review_schedule(self) -> list[ScheduledReview]:
        """All tracked problems, earliest due first."""
        now = self._clock()
        return [
            ScheduledReview(
                problem_id=state.problem_id,
                title=title,
                ease_factor=state.ease_factor,
                interval_days=state.interval_days,
                next_review_ts=state.next_review_ts,
                due=state.next_review_ts <= now,
            )
            for state, title in self.storage.list_repetition_states()
        ]
