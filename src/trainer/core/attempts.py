"""Attempt processing.

Responsibilities:
- Resolve the canonical problem (alternatives roll up onto their parent)
- Resolve difficulty and skill tags, falling back to the parent's
- Append the attempt to the log exactly as submitted
- Run the repetition and mastery updaters

The log write, the repetition upsert and the skill updates share one
storage transaction: a failure in any of them leaves no trace.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from trainer.core import constants as c
from trainer.core.mastery import MasteryChange, MasteryUpdater
from trainer.core.models import AttemptLog, Difficulty
from trainer.core.repetition import RepetitionUpdate, RepetitionUpdater
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)


class ProblemNotFoundError(Exception):
    """The submitted id is neither a problem nor an alternative."""

    def __init__(self, problem_id: int):
        self.problem_id = problem_id
        super().__init__(f"Problem not found: {problem_id}")


@dataclass
class ResolvedAttempt:
    """Metadata resolved for a submitted attempt."""

    submitted_id: int
    canonical_id: int
    is_alternative: bool
    difficulty: Difficulty
    skill_ids: list[int]


@dataclass
class AttemptOutcome:
    """Everything one submission changed."""

    attempt_id: int
    resolved: ResolvedAttempt
    attempt_count: int
    is_new: bool
    repetition: RepetitionUpdate
    mastery: list[MasteryChange] = field(default_factory=list)


class AttemptProcessor:
    """Orchestrates one submitted attempt."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._repetition = RepetitionUpdater(storage)
        self._mastery = MasteryUpdater(storage)

    def resolve(self, problem_id: int) -> ResolvedAttempt:
        """Resolve canonical id, difficulty and skill tags.

        Raises:
            ProblemNotFoundError: If the id is unknown.
        """
        canonical_id, is_alternative = self._storage.resolve_parent_id(problem_id)

        metadata = self._storage.get_problem_metadata(problem_id)
        parent_metadata = None
        if canonical_id != problem_id:
            parent_metadata = self._storage.get_problem_metadata(canonical_id)

        if metadata is None:
            # Pure alternative (no problems row): use the parent's metadata
            metadata = parent_metadata
        if metadata is None:
            raise ProblemNotFoundError(problem_id)

        difficulty, skill_ids = metadata
        if not skill_ids and parent_metadata is not None:
            skill_ids = parent_metadata[1]

        return ResolvedAttempt(
            submitted_id=problem_id,
            canonical_id=canonical_id,
            is_alternative=is_alternative,
            difficulty=difficulty,
            skill_ids=list(skill_ids),
        )

    def submit(self, log: AttemptLog, now: int) -> AttemptOutcome:
        """Process one attempt.

        New-vs-review is decided by the number of logged attempts on the
        canonical id. Attempts on an alternative are logged under the
        alternative id and never raise that count, so a parent whose due
        reviews are always served as alternatives keeps taking the "new"
        branch and its interval restarts at 4 (or 2) days each time.

        Args:
            log: The attempt as submitted (problem id may be an alternative)
            now: Current unix timestamp (seconds)

        Raises:
            ProblemNotFoundError: If the problem id is unknown.
            StorageError: If any persistence step fails (nothing is kept).
        """
        logger.info("attempt.processing", problem_id=log.problem_id)
        resolved = self.resolve(log.problem_id)

        with self._storage.transaction():
            attempt_id = self._storage.append_attempt(log, timestamp=now)

            # Counted on the canonical id after logging; a direct attempt
            # counts itself, an alternative attempt does not.
            attempt_count = self._storage.count_attempts(resolved.canonical_id)
            is_new = attempt_count <= c.NEW_ATTEMPT_LIMIT

            repetition = self._repetition.update(
                resolved.canonical_id, log, resolved.difficulty, is_new, now
            )
            mastery = self._mastery.update(
                resolved.skill_ids, log, resolved.difficulty, is_new
            )

        if not resolved.skill_ids:
            logger.info("attempt.no_skills", problem_id=log.problem_id)

        logger.info(
            "attempt.processed",
            attempt_id=attempt_id,
            problem_id=log.problem_id,
            canonical_id=resolved.canonical_id,
            new=is_new,
            branch=repetition.outcome.value,
            skills_updated=len(mastery),
        )
        return AttemptOutcome(
            attempt_id=attempt_id,
            resolved=resolved,
            attempt_count=attempt_count,
            is_new=is_new,
            repetition=repetition,
            mastery=mastery,
        )
