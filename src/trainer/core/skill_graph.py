"""Skill unlock resolver.

The prerequisite DAG is loaded once into an in-memory adjacency mapping.
Mastery changes between requests, so the unlocked set itself is recomputed
on every call from a single read of all skill states.

Unlock rule, per prerequisite:
    mastery >= 0.7 AND (mastery >= 0.9 OR attempts >= 2)

A skill is unlocked when every prerequisite passes. A skill without
prerequisites is always unlocked. A prerequisite with no stored state counts
as mastery 0.0 and 0 attempts.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Mapping

import structlog

from trainer.core import constants as c
from trainer.core.models import SkillState
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)


class SkillGraphError(Exception):
    """The prerequisite graph is cyclic or references unknown skills."""

    pass


def prerequisite_satisfied(state: SkillState | None) -> bool:
    """Whether a single prerequisite skill passes the unlock rule."""
    if state is None:
        return False
    if state.mastery < c.MASTERY_UNLOCK_THRESHOLD:
        return False
    return (
        state.mastery >= c.MASTERY_CONSOLIDATION_THRESHOLD
        or state.attempts >= c.ATTEMPTS_CONSOLIDATION_THRESHOLD
    )


def build_adjacency(
    skill_ids: Iterable[int], edges: Iterable[tuple[int, int]]
) -> dict[int, frozenset[int]]:
    """Build ``skill -> prerequisites`` and validate the DAG.

    Raises:
        SkillGraphError: If an edge references an unknown skill or the
            graph contains a cycle.
    """
    prereqs: dict[int, set[int]] = {sid: set() for sid in skill_ids}
    for skill_id, prereq_id in edges:
        if skill_id not in prereqs or prereq_id not in prereqs:
            raise SkillGraphError(
                f"Prerequisite edge {skill_id} -> {prereq_id} references an unknown skill"
            )
        prereqs[skill_id].add(prereq_id)

    cycle = find_cycle(prereqs)
    if cycle:
        raise SkillGraphError(f"Prerequisite graph has a cycle through skills {sorted(cycle)}")

    return {sid: frozenset(p) for sid, p in prereqs.items()}


def find_cycle(prereqs: Mapping[int, Iterable]) -> set:
    """Return the nodes left on a cycle (empty set if the graph is a DAG).

    Kahn's algorithm: repeatedly remove nodes with no remaining
    prerequisites; whatever cannot be removed sits on or behind a cycle.
    """
    remaining = {node: set(deps) for node, deps in prereqs.items()}
    dependents: dict = {node: [] for node in remaining}
    for node, deps in remaining.items():
        for dep in deps:
            dependents.setdefault(dep, []).append(node)

    ready = deque(node for node, deps in remaining.items() if not deps)
    resolved = 0
    while ready:
        node = ready.popleft()
        resolved += 1
        for child in dependents.get(node, ()):
            deps = remaining[child]
            deps.discard(node)
            if not deps:
                ready.append(child)

    if resolved == len(remaining):
        return set()
    return {node for node, deps in remaining.items() if deps}


class SkillUnlockResolver:
    """Computes the set of unlocked skills from current mastery."""

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        self._prereqs = build_adjacency(
            storage.list_skill_ids(), storage.list_prerequisite_edges()
        )
        logger.debug(
            "skill_graph.loaded",
            skills=len(self._prereqs),
            edges=sum(len(p) for p in self._prereqs.values()),
        )

    @property
    def prerequisites(self) -> Mapping[int, frozenset[int]]:
        return self._prereqs

    def unlocked_skills(self) -> frozenset[int]:
        """Skill ids whose prerequisites are all satisfied right now."""
        states = self._storage.list_skill_states()
        unlocked = frozenset(
            sid
            for sid, prereqs in self._prereqs.items()
            if all(prerequisite_satisfied(states.get(p)) for p in prereqs)
        )
        logger.debug("skill_graph.unlocked", skill_ids=sorted(unlocked))
        return unlocked

    def locked_prerequisites(
        self, skill_id: int, states: Mapping[int, SkillState] | None = None
    ) -> list[int]:
        """Prerequisites of ``skill_id`` that currently fail the unlock rule."""
        if states is None:
            states = self._storage.list_skill_states()
        return sorted(
            p for p in self._prereqs.get(skill_id, ()) if not prerequisite_satisfied(states.get(p))
        )
