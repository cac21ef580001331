"""Data model for the practice trainer.

Plain dataclasses shared by the storage layer, the scheduling core and the
outer surfaces (CLI, web API).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from trainer.core import constants as c

logger = structlog.get_logger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class Difficulty(str, Enum):
    """Problem difficulty."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: str | None) -> Difficulty:
        """Parse a stored difficulty string, falling back to Medium."""
        for member in cls:
            if member.value == value:
                return member
        logger.debug("difficulty.unknown", value=value, fallback=cls.MEDIUM.value)
        return cls.MEDIUM

    @property
    def expected_minutes(self) -> float:
        return {
            Difficulty.EASY: c.EXPECTED_TIME_EASY,
            Difficulty.MEDIUM: c.EXPECTED_TIME_MEDIUM,
            Difficulty.HARD: c.EXPECTED_TIME_HARD,
        }[self]

    @property
    def mastery_multiplier(self) -> float:
        return {
            Difficulty.EASY: c.DIFFICULTY_MULTIPLIER_EASY,
            Difficulty.MEDIUM: c.DIFFICULTY_MULTIPLIER_MEDIUM,
            Difficulty.HARD: c.DIFFICULTY_MULTIPLIER_HARD,
        }[self]


# Discovery ordering over raw stored strings; anything unrecognized sorts last
DIFFICULTY_RANK = {"Easy": 1, "Medium": 2, "Hard": 3}
UNKNOWN_DIFFICULTY_RANK = 4


def difficulty_rank(value: str | None) -> int:
    """Rank a raw difficulty string for discovery ordering."""
    return DIFFICULTY_RANK.get(value or "", UNKNOWN_DIFFICULTY_RANK)


class Tier(str, Enum):
    """Which selector tier produced a recommendation."""

    REVIEW = "review"
    VARIATION = "variation"
    DISCOVERY = "discovery"
    CRAM = "cram"

    @property
    def label(self) -> str:
        return TIER_LABELS[self]


TIER_LABELS = {
    Tier.REVIEW: "🧠 Spaced Review",
    Tier.VARIATION: "🔀 Concept Variation",
    Tier.DISCOVERY: "✨ New Discovery",
    Tier.CRAM: "🔥 Cram Mode",
}


# =============================================================================
# CATALOG RECORDS
# =============================================================================


@dataclass(frozen=True)
class Skill:
    """A node of the prerequisite DAG."""

    id: int
    name: str
    prerequisites: frozenset[int] = frozenset()


@dataclass
class Problem:
    """A practice problem (or an alternative exercise)."""

    id: int
    title: str
    url: str
    difficulty: str
    skill_ids: list[int] = field(default_factory=list)
    parent_id: int | None = None  # set for alternatives


# =============================================================================
# LEARNER STATE
# =============================================================================


@dataclass
class SkillState:
    """Mastery state for one skill."""

    skill_id: int
    mastery: float = 0.0
    attempts: int = 0


@dataclass
class ProblemRepetitionState:
    """SM-2 state for a canonical problem."""

    problem_id: int
    ease_factor: float = c.EASE_FACTOR_DEFAULT
    interval_days: float = c.INTERVAL_DEFAULT
    next_review_ts: int = 0


@dataclass
class AttemptLog:
    """One submitted attempt, exactly as received."""

    problem_id: int
    time_minutes: float
    solved: bool
    read_solution: bool = False
    revealed_skills: bool = False

    @property
    def is_fail(self) -> bool:
        return not self.solved or self.read_solution


@dataclass
class AttemptRecord:
    """An attempt row as stored in the append-only log."""

    id: int
    problem_id: int
    time_minutes: float
    solved: bool
    read_solution: bool
    revealed_skills: bool
    timestamp: int


# =============================================================================
# VIEWS
# =============================================================================


@dataclass
class ProblemView:
    """A recommendation returned to the command surface."""

    id: int
    title: str
    url: str
    difficulty: str
    tier: Tier
    skills: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.tier.label

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "difficulty": self.difficulty,
            "label": self.label,
            "tier": self.tier.value,
            "skills": list(self.skills),
        }
