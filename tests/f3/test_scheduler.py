"""Tests for next-problem selection (F3)."""

import random

import pytest

from conftest import ARRAYS, NOW, STACK, TRACK, TWO_POINTERS
from trainer.core.models import AttemptLog, ProblemRepetitionState, SkillState, Tier
from trainer.core.scheduler import CandidateSelector
from trainer.core.skill_graph import SkillUnlockResolver
from trainer.core.trainer import Trainer
from trainer.db.catalog import parse_catalog, seed_catalog
from trainer.db.storage import Storage


def _selector(storage, seed: int = 0) -> CandidateSelector:
    return CandidateSelector(
        storage,
        SkillUnlockResolver(storage),
        storage.get_track_id(TRACK),
        random.Random(seed),
    )


def _track(storage, problem_id: int) -> None:
    """Mark a problem as attempted and scheduled far in the future."""
    storage.append_attempt(AttemptLog(problem_id, 5, True), timestamp=NOW)
    storage.save_repetition_state(ProblemRepetitionState(problem_id, 2.5, 4.0, NOW + 10**6))


class TestDiscovery:
    """Unseen problems inside the unlocked skill set, easiest first."""

    def test_first_recommendation(self, trainer):
        view = trainer.next_recommendation()

        assert view.id == 1
        assert view.tier is Tier.DISCOVERY
        assert view.label == "✨ New Discovery"
        assert view.skills == ["Arrays"]

    def test_easiest_first(self, trainer):
        trainer.submit_attempt(AttemptLog(1, 5, True))

        view = trainer.next_recommendation()

        assert view.id == 2
        assert view.difficulty == "Medium"

    @pytest.mark.parametrize("seed", range(10))
    def test_ties_random_and_locked_skills_never_served(self, storage, seed):
        """With Two Pointers and Stack unlocked, only the two Easy problems qualify."""
        storage.save_skill_state(SkillState(ARRAYS, 0.95, 2))
        for problem_id in (1, 2):
            _track(storage, problem_id)

        view = _selector(storage, seed).next_problem(NOW)

        assert view.tier is Tier.DISCOVERY
        assert view.id in {3, 5}

    def test_ties_cover_all_candidates(self, storage):
        storage.save_skill_state(SkillState(ARRAYS, 0.95, 2))
        seen = {_selector(storage, seed).next_problem(NOW).id for seed in range(30)}

        assert seen == {1, 3, 5}


class TestDueReview:
    """Due reviews take precedence over everything else."""

    def test_review_when_due(self, trainer, clock):
        trainer.submit_attempt(AttemptLog(2, 10, True))
        clock.advance(5)

        view = trainer.next_recommendation()

        assert view.id == 2
        assert view.tier is Tier.REVIEW
        assert view.label == "🧠 Spaced Review"

    def test_not_due_yet(self, trainer, clock):
        trainer.submit_attempt(AttemptLog(2, 10, True))
        clock.advance(3)

        view = trainer.next_recommendation()
        assert view.tier is Tier.DISCOVERY

    def test_alternative_served_as_variation(self, trainer, clock):
        trainer.submit_attempt(AttemptLog(1, 5, True))
        clock.advance(4)

        view = trainer.next_recommendation()

        assert view.id == 1001
        assert view.tier is Tier.VARIATION
        assert view.label == "🔀 Concept Variation"
        assert view.skills == ["Arrays"]

    def test_most_overdue_first(self, trainer, clock):
        trainer.submit_attempt(AttemptLog(2, 10, True))  # due in 4 days
        trainer.submit_attempt(AttemptLog(1, 5, False))  # due in 1 day
        clock.advance(5)

        view = trainer.next_recommendation()
        assert view.id == 1001


class TestCram:
    """Fallback when nothing is due and nothing new is unlocked."""

    def test_cram_when_discovery_exhausted(self, trainer):
        trainer.submit_attempt(AttemptLog(1, 5, True))
        trainer.submit_attempt(AttemptLog(2, 10, True))

        view = trainer.next_recommendation()

        assert view.tier is Tier.CRAM
        assert view.label == "🔥 Cram Mode"
        assert view.id in {1, 2, 4}

    def test_cram_prefers_weakest_skill(self, storage):
        storage.save_skill_state(SkillState(ARRAYS, 0.95, 5))
        storage.save_skill_state(SkillState(TWO_POINTERS, 0.3, 1))
        storage.save_skill_state(SkillState(STACK, 0.6, 1))
        for problem_id in (1, 2, 3, 4, 5):
            _track(storage, problem_id)

        for seed in range(10):
            view = _selector(storage, seed).next_problem(NOW)
            assert view.tier is Tier.CRAM
            assert view.id in {3, 4}


class TestNoCandidate:
    """Nothing to recommend."""

    def test_empty_track(self, tmp_path):
        with Storage(tmp_path / "empty.db") as store:
            seed_catalog(store, parse_catalog({"track": TRACK, "skills": [{"name": "A"}]}))
            assert _selector(store).next_problem(NOW) is None

    def test_untagged_problems_never_served(self, tmp_path):
        data = {
            "track": TRACK,
            "skills": [{"name": "A"}],
            "problems": [{"id": 1, "title": "Loose", "difficulty": "Easy"}],
        }
        with Storage(tmp_path / "untagged.db") as store:
            seed_catalog(store, parse_catalog(data))
            trainer = Trainer(store, track_name=TRACK)
            assert trainer.next_recommendation() is None
