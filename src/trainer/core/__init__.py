"""Core business logic module.

Modules:
- constants: scheduling and mastery parameters
- models: shared dataclasses and enums
- skill_graph: prerequisite DAG and skill unlock resolver
- scheduler: three-tier next-problem selection
- repetition: SM-2 variant repetition updater
- mastery: skill mastery updater
- attempts: attempt processing pipeline
- trainer: service used by the CLI and web API
"""

__all__ = [
    "constants",
    "models",
    "skill_graph",
    "scheduler",
    "repetition",
    "mastery",
    "attempts",
    "trainer",
]
