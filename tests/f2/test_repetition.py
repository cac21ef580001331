"""Tests for the spaced repetition state machine (F2)."""

import math

import pytest

from conftest import NOW
from trainer.core import constants as c
from trainer.core.models import AttemptLog, Difficulty, ProblemRepetitionState
from trainer.core.repetition import (
    RepetitionOutcome,
    RepetitionUpdater,
    classify,
    next_repetition_state,
)


def _apply(
    difficulty=Difficulty.EASY,
    minutes=5.0,
    solved=True,
    read_solution=False,
    is_new=True,
    ease=c.EASE_FACTOR_DEFAULT,
    interval=c.INTERVAL_DEFAULT,
):
    return next_repetition_state(
        problem_id=1,
        ease=ease,
        interval=interval,
        is_new=is_new,
        difficulty=difficulty,
        minutes=minutes,
        solved=solved,
        read_solution=read_solution,
        now=NOW,
    )


class TestNewProblems:
    """First attempts are not punished for slowness."""

    def test_clean_solve(self):
        """Easy, 5 of 10 expected minutes: clean solve."""
        state, outcome = _apply(Difficulty.EASY, minutes=5)

        assert outcome is RepetitionOutcome.NEW_CLEAN
        assert state.ease_factor == pytest.approx(2.65)
        assert state.interval_days == 4.0
        assert state.next_review_ts == NOW + 4 * c.DAY_SECONDS

    def test_grit_solve(self):
        state, outcome = _apply(Difficulty.EASY, minutes=20)

        assert outcome is RepetitionOutcome.NEW_GRIT
        assert state.ease_factor == pytest.approx(2.45)
        assert state.interval_days == 2.0

    def test_grit_boundary_is_exclusive(self):
        """A ratio of exactly 1.5 is still a clean solve."""
        _, outcome = _apply(Difficulty.EASY, minutes=15)
        assert outcome is RepetitionOutcome.NEW_CLEAN


class TestFailures:
    """A failed attempt resets the interval regardless of history."""

    @pytest.mark.parametrize("difficulty", list(Difficulty))
    def test_unsolved(self, difficulty):
        state, outcome = _apply(difficulty, minutes=5, solved=False)

        assert outcome is RepetitionOutcome.FAIL
        assert state.ease_factor == pytest.approx(2.3)
        assert state.interval_days == c.INTERVAL_MIN

    def test_read_solution_is_a_fail(self):
        state, outcome = _apply(solved=True, read_solution=True)

        assert outcome is RepetitionOutcome.FAIL
        assert state.interval_days == 1.0

    def test_fail_on_review_resets_interval(self):
        state, _ = _apply(solved=False, is_new=False, ease=2.5, interval=60.0)
        assert state.interval_days == 1.0

    def test_ease_floor(self):
        state, _ = _apply(solved=False, ease=1.4)
        assert state.ease_factor == c.EASE_FACTOR_MIN

    def test_repeated_fails_stay_at_floor(self):
        ease = c.EASE_FACTOR_DEFAULT
        for _ in range(10):
            state, _ = _apply(solved=False, is_new=False, ease=ease, interval=1.0)
            ease = state.ease_factor

        assert ease == c.EASE_FACTOR_MIN


class TestReviews:
    """Reviews scale the previous interval."""

    def test_ratio_two_is_normal_not_struggle(self):
        """Hard, 90 of 45 expected minutes: ratio 2.0 is not a struggle."""
        state, outcome = _apply(Difficulty.HARD, minutes=90, is_new=False, ease=2.5, interval=4.0)

        assert outcome is RepetitionOutcome.REVIEW_NORMAL
        assert state.ease_factor == 2.5
        assert state.interval_days == pytest.approx(10.0)

    def test_struggle(self):
        state, outcome = _apply(Difficulty.HARD, minutes=91, is_new=False, ease=2.5, interval=4.0)

        assert outcome is RepetitionOutcome.REVIEW_STRUGGLE
        assert state.ease_factor == pytest.approx(2.35)
        assert state.interval_days == pytest.approx(2.8)

    def test_speed_uses_updated_ease(self):
        state, outcome = _apply(Difficulty.MEDIUM, minutes=10, is_new=False, ease=2.5, interval=4.0)

        assert outcome is RepetitionOutcome.REVIEW_SPEED
        assert state.ease_factor == pytest.approx(2.65)
        assert state.interval_days == pytest.approx(4.0 * 2.65 * 1.2)

    def test_speed_boundary_is_exclusive(self):
        """A ratio of exactly 0.6 is a normal review."""
        _, outcome = _apply(Difficulty.MEDIUM, minutes=15, is_new=False, ease=2.5, interval=4.0)
        assert outcome is RepetitionOutcome.REVIEW_NORMAL

    def test_interval_ceiling(self):
        state, _ = _apply(Difficulty.MEDIUM, minutes=20, is_new=False, ease=2.5, interval=100.0)
        assert state.interval_days == c.INTERVAL_MAX

    def test_interval_floor_from_unset_state(self):
        """A review with no recorded interval clamps up to one day."""
        state, _ = _apply(Difficulty.MEDIUM, minutes=20, is_new=False, interval=0.0)
        assert state.interval_days == c.INTERVAL_MIN

    def test_ease_ceiling(self):
        state, _ = _apply(Difficulty.MEDIUM, minutes=5, is_new=False, ease=4.95, interval=2.0)
        assert state.ease_factor == c.EASE_FACTOR_MAX

    def test_next_review_is_floored(self):
        state, _ = _apply(Difficulty.HARD, minutes=91, is_new=False, ease=2.5, interval=4.0)
        assert state.next_review_ts == NOW + math.floor(state.interval_days * c.DAY_SECONDS)


class TestClassify:
    """Tests for branch selection."""

    @pytest.mark.parametrize(
        "is_new,is_fail,ratio,expected",
        [
            (True, True, 0.1, RepetitionOutcome.FAIL),
            (False, True, 5.0, RepetitionOutcome.FAIL),
            (True, False, 1.5, RepetitionOutcome.NEW_CLEAN),
            (True, False, 1.51, RepetitionOutcome.NEW_GRIT),
            (True, False, 0.1, RepetitionOutcome.NEW_CLEAN),
            (False, False, 2.0, RepetitionOutcome.REVIEW_NORMAL),
            (False, False, 2.01, RepetitionOutcome.REVIEW_STRUGGLE),
            (False, False, 0.6, RepetitionOutcome.REVIEW_NORMAL),
            (False, False, 0.59, RepetitionOutcome.REVIEW_SPEED),
        ],
    )
    def test_classify(self, is_new, is_fail, ratio, expected):
        assert classify(is_new, is_fail, ratio) is expected


class TestRepetitionUpdater:
    """Tests for the persisted update."""

    def test_creates_state_on_first_attempt(self, storage):
        update = RepetitionUpdater(storage).update(
            1, AttemptLog(1, 5, True), Difficulty.EASY, is_new=True, now=NOW
        )

        assert update.old_ease == c.EASE_FACTOR_DEFAULT
        assert update.old_interval == c.INTERVAL_DEFAULT
        assert storage.get_repetition_state(1) == update.state

    def test_builds_on_stored_state(self, storage):
        storage.save_repetition_state(ProblemRepetitionState(2, 2.0, 5.0, NOW))

        update = RepetitionUpdater(storage).update(
            2, AttemptLog(2, 25, True), Difficulty.MEDIUM, is_new=False, now=NOW
        )

        assert update.outcome is RepetitionOutcome.REVIEW_NORMAL
        assert update.old_ease == 2.0
        assert storage.get_repetition_state(2).interval_days == pytest.approx(10.0)
