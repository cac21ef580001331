"""Next-problem selection.

Three ordered tiers, first match wins:

1. Due review   - most overdue tracked problem (or a random alternative of it)
2. Discovery    - unseen problem whose skills are all unlocked, easiest first
3. Cram         - any problem touching an unlocked skill, weakest skill first

Ties are broken uniformly at random with the injected ``random.Random``.
"""

from __future__ import annotations

import random

import structlog

from trainer.core.models import Problem, ProblemView, Tier, difficulty_rank
from trainer.core.skill_graph import SkillUnlockResolver
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)


class CandidateSelector:
    """Picks at most one problem to recommend."""

    def __init__(
        self,
        storage: Storage,
        resolver: SkillUnlockResolver,
        track_id: int,
        rng: random.Random | None = None,
    ) -> None:
        self._storage = storage
        self._resolver = resolver
        self._track_id = track_id
        self._rng = rng or random.Random()

    def next_problem(self, now: int) -> ProblemView | None:
        """Return the next recommendation, or None if nothing qualifies."""
        logger.debug("scheduler.requested", now=now, track_id=self._track_id)

        view = self._due_review(now)
        if view is not None:
            return view

        unlocked = self._resolver.unlocked_skills()

        view = self._discovery(unlocked)
        if view is not None:
            logger.info("scheduler.discovery_served", problem_id=view.id, title=view.title)
            return view

        view = self._cram(unlocked)
        if view is not None:
            logger.warning(
                "scheduler.cram_mode",
                problem_id=view.id,
                title=view.title,
                reason="no new content or reviews available",
            )
            return view

        logger.info("scheduler.no_candidate")
        return None

    # -------------------------------------------------------------------------
    # Tiers
    # -------------------------------------------------------------------------

    def _due_review(self, now: int) -> ProblemView | None:
        parent = self._storage.find_due_review(now)
        if parent is None:
            return None

        alternative = self._storage.get_random_alternative(parent.id, self._rng)
        if alternative is not None:
            logger.info(
                "scheduler.variation_served",
                problem_id=alternative.id,
                title=alternative.title,
                parent_id=parent.id,
                parent_title=parent.title,
            )
            return self._to_view(alternative, Tier.VARIATION)

        logger.info("scheduler.review_served", problem_id=parent.id, title=parent.title)
        return self._to_view(parent, Tier.REVIEW)

    def _discovery(self, unlocked: frozenset[int]) -> ProblemView | None:
        if not unlocked:
            return None

        candidates = self._storage.list_discovery_candidates(self._track_id, unlocked)
        if not candidates:
            return None

        best_rank = min(difficulty_rank(p.difficulty) for p in candidates)
        easiest = [p for p in candidates if difficulty_rank(p.difficulty) == best_rank]
        return self._to_view(self._rng.choice(easiest), Tier.DISCOVERY)

    def _cram(self, unlocked: frozenset[int]) -> ProblemView | None:
        if not unlocked:
            return None

        candidates = self._storage.list_cram_candidates(self._track_id, unlocked)
        if not candidates:
            return None

        weakest = min(mastery for _, mastery in candidates)
        pool = [p for p, mastery in candidates if mastery == weakest]
        return self._to_view(self._rng.choice(pool), Tier.CRAM)

    # -------------------------------------------------------------------------

    def _to_view(self, problem: Problem, tier: Tier) -> ProblemView:
        skills = self._storage.get_skill_names(problem.id)
        if not skills and problem.parent_id is not None:
            skills = self._storage.get_skill_names(problem.parent_id)
        return ProblemView(
            id=problem.id,
            title=problem.title,
            url=problem.url,
            difficulty=problem.difficulty,
            tier=tier,
            skills=skills,
        )
