"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, f3, f4).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.

Shared fixtures build a temporary SQLite database seeded from a small
in-test catalog:

    Arrays ──┬── Two Pointers ──┐
             └── Stack ─────────┴── Trees
"""

import random
from typing import Any

import pytest

from trainer.core import constants as c
from trainer.core.trainer import Trainer
from trainer.db.catalog import parse_catalog, seed_catalog
from trainer.db.storage import Storage

# Current implementation phase
CURRENT_PHASE = 4

# Fixed "now" for deterministic scheduling (2023-11-14 22:13:20 UTC)
NOW = 1_700_000_000

TRACK = "Test Track"

# Skill ids follow catalog order
ARRAYS, TWO_POINTERS, STACK, TREES = 1, 2, 3, 4


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, days: float) -> None:
        self.now += int(days * c.DAY_SECONDS)


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """Small catalog with a diamond-shaped prerequisite graph."""
    return {
        "track": TRACK,
        "skills": [
            {"name": "Arrays"},
            {"name": "Two Pointers", "prereqs": ["Arrays"]},
            {"name": "Stack", "prereqs": ["Arrays"]},
            {"name": "Trees", "prereqs": ["Two Pointers", "Stack"]},
        ],
        "problems": [
            {
                "id": 1,
                "title": "Two Sum",
                "difficulty": "Easy",
                "url": "https://leetcode.com/problems/two-sum/",
                "category": "Arrays",
                "alternatives": [
                    {
                        "id": 1001,
                        "title": "Two Sum Variant",
                        "url": "https://example.com/two-sum-variant",
                    }
                ],
            },
            {"id": 2, "title": "Group Anagrams", "difficulty": "Medium", "skills": ["Arrays"]},
            {"id": 3, "title": "Valid Palindrome", "difficulty": "Easy", "skills": ["Two Pointers"]},
            {
                "id": 4,
                "title": "Trapping Rain Water",
                "difficulty": "Hard",
                "skills": ["Arrays", "Two Pointers"],
            },
            {"id": 5, "title": "Valid Parentheses", "difficulty": "Easy", "skills": ["Stack"]},
            {"id": 6, "title": "Invert Binary Tree", "difficulty": "Easy", "skills": ["Trees"]},
            {
                "id": 7,
                "title": "Binary Tree Maximum Path Sum",
                "difficulty": "Hard",
                "skills": ["Trees"],
            },
        ],
    }


@pytest.fixture
def storage(tmp_path, catalog_data):
    """Storage on a fresh database seeded from catalog_data."""
    store = Storage(tmp_path / "trainer.db")
    seed_catalog(store, parse_catalog(catalog_data))
    yield store
    store.close()


@pytest.fixture
def track_id(storage) -> int:
    return storage.get_track_id(TRACK)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def trainer(storage, clock, rng):
    """Trainer over the seeded storage with a fixed clock."""
    return Trainer(storage, track_name=TRACK, rng=rng, clock=clock)
