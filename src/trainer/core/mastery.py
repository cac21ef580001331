"""Skill mastery updates.

Every skill tagged on the attempted problem receives the same delta:

    delta = ALPHA * difficulty_mult * performance_mult * scaffolding_mult

There is no normalization across the number of skills, so one solve can
raise several skills at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog

from trainer.core import constants as c
from trainer.core.models import AttemptLog, Difficulty, SkillState
from trainer.core.repetition import clamp, time_ratio
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)


@dataclass
class MasteryChange:
    """Mastery before/after for one skill."""

    skill_id: int
    old_mastery: float
    new_mastery: float
    attempts: int

    @property
    def delta(self) -> float:
        return self.new_mastery - self.old_mastery


def performance_multiplier(is_fail: bool, is_new: bool, ratio: float) -> float:
    """Reviews give very little mastery (maintenance only)."""
    if is_fail:
        return c.PERFORMANCE_MULTIPLIER_FAIL
    if not is_new:
        return c.PERFORMANCE_MULTIPLIER_REVIEW
    if ratio > c.RATIO_GRIT:
        return c.PERFORMANCE_MULTIPLIER_NEW_GRIT
    return c.PERFORMANCE_MULTIPLIER_NEW_CLEAN


def scaffolding_multiplier(revealed_skills: bool) -> float:
    """Seeing the tags first means the pattern was not recognized unaided."""
    if revealed_skills:
        return c.SCAFFOLDING_MULTIPLIER_REVEALED
    return c.SCAFFOLDING_MULTIPLIER_NONE


def mastery_delta(log: AttemptLog, difficulty: Difficulty, is_new: bool) -> float:
    """Mastery gain applied to each tagged skill for this attempt."""
    ratio = time_ratio(log.time_minutes, difficulty)
    return (
        c.ALPHA
        * difficulty.mastery_multiplier
        * performance_multiplier(log.is_fail, is_new, ratio)
        * scaffolding_multiplier(log.revealed_skills)
    )


def apply_delta(state: SkillState, delta: float) -> SkillState:
    """New state with mastery clamped to [0, 1] and one more attempt."""
    return SkillState(
        skill_id=state.skill_id,
        mastery=clamp(state.mastery + delta, 0.0, 1.0),
        attempts=state.attempts + 1,
    )


class MasteryUpdater:
    """Fans an attempt out over every tagged skill."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def update(
        self,
        skill_ids: Iterable[int],
        log: AttemptLog,
        difficulty: Difficulty,
        is_new: bool,
    ) -> list[MasteryChange]:
        """Update mastery and attempt counters; no-op for an empty tag list."""
        delta = mastery_delta(log, difficulty, is_new)
        logger.debug(
            "mastery.input",
            delta=round(delta, 4),
            scaffolded=log.revealed_skills,
            new=is_new,
        )

        changes: list[MasteryChange] = []
        for sid in skill_ids:
            current = self._storage.get_skill_state(sid)
            updated = apply_delta(current, delta)
            self._storage.save_skill_state(updated)

            logger.info(
                "mastery.updated",
                skill_id=sid,
                mastery_from=round(current.mastery, 3),
                mastery_to=round(updated.mastery, 3),
                attempts=updated.attempts,
            )
            changes.append(
                MasteryChange(
                    skill_id=sid,
                    old_mastery=current.mastery,
                    new_mastery=updated.mastery,
                    attempts=updated.attempts,
                )
            )
        return changes
