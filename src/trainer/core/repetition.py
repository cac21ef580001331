"""Spaced repetition (SM-2 variant).

Decides when a problem must be reviewed again. New problems are not
punished for slowness; on reviews, slowness means the pattern was not
instant and shrinks the interval.

Transition table (first matching rule applies):

    fail                      ease -0.20   interval = 1.0
    new    and ratio > 1.5    ease -0.05   interval = 2.0       (grit)
    new    and ratio <= 1.5   ease +0.15   interval = 4.0       (clean)
    review and ratio > 2.0    ease -0.15   interval *= 0.7      (struggle)
    review and ratio < 0.6    ease +0.15   interval *= ease*1.2 (speed)
    review otherwise          ease  0      interval *= ease     (normal)

Ease is then clamped to [1.3, 5.0] and the interval to [1.0, 180.0] days.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import structlog

from trainer.core import constants as c
from trainer.core.models import AttemptLog, Difficulty, ProblemRepetitionState
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)


class RepetitionOutcome(str, Enum):
    """Which branch of the transition table applied."""

    FAIL = "fail"
    NEW_GRIT = "new_grit"
    NEW_CLEAN = "new_clean"
    REVIEW_STRUGGLE = "review_struggle"
    REVIEW_SPEED = "review_speed"
    REVIEW_NORMAL = "review_normal"


@dataclass
class RepetitionUpdate:
    """Before/after snapshot of one repetition update."""

    problem_id: int
    outcome: RepetitionOutcome
    old_ease: float
    old_interval: float
    state: ProblemRepetitionState


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def time_ratio(minutes: float, difficulty: Difficulty) -> float:
    """Minutes spent relative to the expected time for the difficulty."""
    return minutes / difficulty.expected_minutes


def classify(is_new: bool, is_fail: bool, ratio: float) -> RepetitionOutcome:
    """Pick the transition-table branch. Boundaries are exclusive."""
    if is_fail:
        return RepetitionOutcome.FAIL
    if is_new:
        if ratio > c.RATIO_GRIT:
            return RepetitionOutcome.NEW_GRIT
        return RepetitionOutcome.NEW_CLEAN
    if ratio > c.RATIO_STRUGGLE:
        return RepetitionOutcome.REVIEW_STRUGGLE
    if ratio < c.RATIO_SPEED:
        return RepetitionOutcome.REVIEW_SPEED
    return RepetitionOutcome.REVIEW_NORMAL


def next_repetition_state(
    problem_id: int,
    ease: float,
    interval: float,
    is_new: bool,
    difficulty: Difficulty,
    minutes: float,
    solved: bool,
    read_solution: bool,
    now: int,
) -> tuple[ProblemRepetitionState, RepetitionOutcome]:
    """Apply one attempt to a repetition state.

    Args:
        problem_id: Canonical problem id
        ease: Current ease factor (2.5 when none recorded)
        interval: Current interval in days (0.0 when none recorded)
        is_new: Whether this is the problem's first tracked attempt
        difficulty: Problem difficulty
        minutes: Minutes spent
        solved: Whether the learner solved it
        read_solution: Whether the learner read the solution
        now: Current unix timestamp (seconds)

    Returns:
        (new_state, outcome)
    """
    is_fail = not solved or read_solution
    ratio = time_ratio(minutes, difficulty)
    outcome = classify(is_new, is_fail, ratio)

    if outcome is RepetitionOutcome.FAIL:
        ease -= c.EASE_FACTOR_DECREMENT_FAIL
        interval = c.INTERVAL_MIN
    elif outcome is RepetitionOutcome.NEW_GRIT:
        ease -= c.EASE_FACTOR_DECREMENT_GRIT
        interval = c.INTERVAL_NEW_GRIT
    elif outcome is RepetitionOutcome.NEW_CLEAN:
        ease += c.EASE_FACTOR_INCREMENT_CLEAN
        interval = c.INTERVAL_NEW_CLEAN
    elif outcome is RepetitionOutcome.REVIEW_STRUGGLE:
        ease -= c.EASE_FACTOR_DECREMENT_STRUGGLE
        interval *= c.INTERVAL_MULTIPLIER_STRUGGLE
    elif outcome is RepetitionOutcome.REVIEW_SPEED:
        ease += c.EASE_FACTOR_INCREMENT_SPEED
        interval *= ease * c.INTERVAL_MULTIPLIER_SPEED
    else:
        interval *= ease

    ease = clamp(ease, c.EASE_FACTOR_MIN, c.EASE_FACTOR_MAX)
    interval = clamp(interval, c.INTERVAL_MIN, c.INTERVAL_MAX)

    logger.debug(
        "repetition.input",
        problem_id=problem_id,
        new=is_new,
        fail=is_fail,
        ratio=round(ratio, 2),
        difficulty=difficulty.value,
        branch=outcome.value,
    )

    state = ProblemRepetitionState(
        problem_id=problem_id,
        ease_factor=ease,
        interval_days=interval,
        next_review_ts=now + math.floor(interval * c.DAY_SECONDS),
    )
    return state, outcome


class RepetitionUpdater:
    """Loads, updates and persists the repetition state of a problem."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def update(
        self,
        canonical_id: int,
        log: AttemptLog,
        difficulty: Difficulty,
        is_new: bool,
        now: int,
    ) -> RepetitionUpdate:
        """Apply an attempt to the canonical problem's state and upsert it."""
        current = self._storage.get_repetition_state(canonical_id)
        if current is None:
            current = ProblemRepetitionState(problem_id=canonical_id)

        state, outcome = next_repetition_state(
            problem_id=canonical_id,
            ease=current.ease_factor,
            interval=current.interval_days,
            is_new=is_new,
            difficulty=difficulty,
            minutes=log.time_minutes,
            solved=log.solved,
            read_solution=log.read_solution,
            now=now,
        )
        self._storage.save_repetition_state(state)

        logger.info(
            "repetition.updated",
            problem_id=canonical_id,
            branch=outcome.value,
            ease_from=round(current.ease_factor, 2),
            ease_to=round(state.ease_factor, 2),
            interval_from=round(current.interval_days, 1),
            interval_to=round(state.interval_days, 1),
        )
        return RepetitionUpdate(
            problem_id=canonical_id,
            outcome=outcome,
            old_ease=current.ease_factor,
            old_interval=current.interval_days,
            state=state,
        )
