"""Static problem catalog.

Loads the YAML catalog (skills, prerequisite DAG, track, problems and their
alternatives) and seeds an empty database with it.

Catalog structure (YAML):

    track: NeetCode 150
    skills:
      - name: Arrays and Hashing
      - name: Two Pointers
        prereqs: [Arrays and Hashing]
    problems:
      - id: 217
        title: Contains Duplicate
        difficulty: Easy
        url: https://leetcode.com/problems/contains-duplicate/
        skills: [Arrays and Hashing]      # or `category: Arrays and Hashing`
        alternatives:
          - id: 10217
            title: Contains Duplicate II
            difficulty: Easy
            url: https://leetcode.com/problems/contains-duplicate-ii/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from trainer.core.skill_graph import find_cycle
from trainer.db.storage import Storage

logger = structlog.get_logger(__name__)

# Default catalog location (relative to project root)
DEFAULT_CATALOG_PATH = Path("data/catalog/neetcode_150.yaml")
DEFAULT_TRACK_NAME = "NeetCode 150"


class CatalogError(Exception):
    """Error loading or validating the catalog."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class CatalogSkill:
    name: str
    prereqs: list[str] = field(default_factory=list)


@dataclass
class CatalogAlternative:
    id: int
    title: str
    difficulty: str
    url: str = ""


@dataclass
class CatalogProblem:
    id: int
    title: str
    difficulty: str
    url: str = ""
    skills: list[str] = field(default_factory=list)
    alternatives: list[CatalogAlternative] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return slugify(self.title)


@dataclass
class Catalog:
    """A parsed, validated catalog."""

    track: str
    skills: list[CatalogSkill]
    problems: list[CatalogProblem]


@dataclass
class SeedResult:
    """Result of seeding."""

    seeded: bool
    skills: int = 0
    problems: int = 0
    alternatives: int = 0
    message: str = ""


# =============================================================================
# HELPERS
# =============================================================================


def slugify(title: str) -> str:
    """Lowercase, hyphen-separated slug for a problem title."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    if key not in data or data[key] in (None, ""):
        raise CatalogError(f"Missing '{key}' in {where}")
    return data[key]


def _parse_problem(raw: dict[str, Any]) -> CatalogProblem:
    where = f"problem {raw.get('id', raw.get('title', '?'))}"
    skills = raw.get("skills")
    if skills is None:
        category = raw.get("category")
        skills = [category] if category else []

    alternatives = [
        CatalogAlternative(
            id=int(_require(alt, "id", f"alternative of {where}")),
            title=str(_require(alt, "title", f"alternative of {where}")),
            difficulty=str(alt.get("difficulty", raw.get("difficulty", "Medium"))),
            url=str(alt.get("url") or ""),
        )
        for alt in raw.get("alternatives") or []
    ]

    return CatalogProblem(
        id=int(_require(raw, "id", where)),
        title=str(_require(raw, "title", where)),
        difficulty=str(_require(raw, "difficulty", where)),
        url=str(raw.get("url") or ""),
        skills=[str(s) for s in skills],
        alternatives=alternatives,
    )


def parse_catalog(data: dict[str, Any]) -> Catalog:
    """Parse and validate a catalog dictionary.

    Raises:
        CatalogError: On missing fields, duplicate ids or names, unknown
            skill references or a cyclic prerequisite graph.
    """
    if not isinstance(data, dict):
        raise CatalogError("Catalog root must be a mapping")

    skills = [
        CatalogSkill(name=str(_require(s, "name", "skill")), prereqs=[str(p) for p in s.get("prereqs") or []])
        for s in data.get("skills") or []
    ]
    names = [s.name for s in skills]
    if len(set(names)) != len(names):
        raise CatalogError("Duplicate skill names in catalog")

    known = set(names)
    for skill in skills:
        for prereq in skill.prereqs:
            if prereq not in known:
                raise CatalogError(f"Skill '{skill.name}' requires unknown skill '{prereq}'")

    cycle = find_cycle({s.name: s.prereqs for s in skills})
    if cycle:
        raise CatalogError(f"Prerequisite cycle among: {', '.join(sorted(cycle))}")

    problems = [_parse_problem(p) for p in data.get("problems") or []]

    problem_ids = [p.id for p in problems]
    if len(set(problem_ids)) != len(problem_ids):
        raise CatalogError("Duplicate problem ids in catalog")

    alt_ids = [a.id for p in problems for a in p.alternatives]
    if len(set(alt_ids)) != len(alt_ids):
        raise CatalogError("Duplicate alternative ids in catalog")

    for problem in problems:
        for tag in problem.skills:
            if tag not in known:
                raise CatalogError(f"Problem {problem.id} is tagged with unknown skill '{tag}'")

    return Catalog(
        track=str(data.get("track") or DEFAULT_TRACK_NAME),
        skills=skills,
        problems=problems,
    )


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================


def load_catalog(path: Path | None = None) -> Catalog:
    """Load and validate a catalog YAML file.

    Args:
        path: Catalog file. Defaults to data/catalog/neetcode_150.yaml

    Raises:
        CatalogError: If the file is missing, unreadable or invalid.
    """
    path = path or DEFAULT_CATALOG_PATH
    if not path.exists():
        raise CatalogError(f"Catalog not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        raise CatalogError(f"Error reading catalog {path}: {e}") from e

    catalog = parse_catalog(data)
    logger.debug(
        "catalog.loaded",
        path=str(path),
        skills=len(catalog.skills),
        problems=len(catalog.problems),
    )
    return catalog


def seed_catalog(storage: Storage, catalog: Catalog) -> SeedResult:
    """Seed an empty database from a catalog.

    Seeding is one-time: a database that already holds problems is left
    untouched. Everything is written in a single transaction.
    """
    if not storage.is_empty():
        logger.info("catalog.seed_skipped", reason="already_seeded")
        return SeedResult(seeded=False, message="Database already seeded")

    with storage.transaction():
        skill_ids = {skill.name: storage.insert_skill(skill.name) for skill in catalog.skills}
        for skill in catalog.skills:
            for prereq in skill.prereqs:
                storage.insert_prerequisite(skill_ids[skill.name], skill_ids[prereq])

        track_id = storage.insert_track(catalog.track)

        n_alternatives = 0
        for problem in catalog.problems:
            storage.insert_problem(
                problem_id=problem.id,
                slug=problem.slug,
                title=problem.title,
                url=problem.url,
                difficulty=problem.difficulty,
                skill_ids=[skill_ids[name] for name in problem.skills],
                track_id=track_id,
            )

        # Parents must exist before their alternatives
        for problem in catalog.problems:
            for alt in problem.alternatives:
                storage.insert_alternative(
                    alternative_id=alt.id,
                    parent_id=problem.id,
                    title=alt.title,
                    url=alt.url,
                    difficulty=alt.difficulty,
                )
                n_alternatives += 1

        storage.init_skill_states()

    logger.info(
        "catalog.seeded",
        track=catalog.track,
        skills=len(catalog.skills),
        problems=len(catalog.problems),
        alternatives=n_alternatives,
    )
    return SeedResult(
        seeded=True,
        skills=len(catalog.skills),
        problems=len(catalog.problems),
        alternatives=n_alternatives,
        message=f"Seeded {len(catalog.problems)} problems into '{catalog.track}'",
    )
