"""Scheduling and mastery parameters.

All values are in minutes, days or unit-less multipliers. Timestamps
elsewhere in the system are unix seconds.
"""

# --- Time ---
DAY_SECONDS = 86400
EXPECTED_TIME_EASY = 10.0  # minutes
EXPECTED_TIME_MEDIUM = 25.0
EXPECTED_TIME_HARD = 45.0

# --- Spaced repetition (SM-2 variant) ---
ALPHA = 0.15  # mastery gain per solve
INTERVAL_MIN = 1.0  # days
INTERVAL_MAX = 180.0
INTERVAL_DEFAULT = 0.0

EASE_FACTOR_MIN = 1.3
EASE_FACTOR_MAX = 5.0
EASE_FACTOR_DEFAULT = 2.5

EASE_FACTOR_DECREMENT_FAIL = 0.20
EASE_FACTOR_DECREMENT_STRUGGLE = 0.15
EASE_FACTOR_INCREMENT_CLEAN = 0.15
EASE_FACTOR_INCREMENT_SPEED = 0.15
EASE_FACTOR_DECREMENT_GRIT = 0.05

INTERVAL_NEW_GRIT = 2.0
INTERVAL_NEW_CLEAN = 4.0
INTERVAL_MULTIPLIER_STRUGGLE = 0.7
INTERVAL_MULTIPLIER_SPEED = 1.2

# Time ratio boundaries (minutes spent / expected minutes)
RATIO_GRIT = 1.5  # new problem: ratio > 1.5 is a grit solve
RATIO_STRUGGLE = 2.0  # review: ratio > 2.0 is a struggle
RATIO_SPEED = 0.6  # review: ratio < 0.6 is a speed solve

# A problem is "new" while its logged attempt count is at most this value
NEW_ATTEMPT_LIMIT = 1

# --- Skill tree / mastery ---
MASTERY_UNLOCK_THRESHOLD = 0.7
MASTERY_CONSOLIDATION_THRESHOLD = 0.9
ATTEMPTS_CONSOLIDATION_THRESHOLD = 2

DIFFICULTY_MULTIPLIER_EASY = 0.8
DIFFICULTY_MULTIPLIER_MEDIUM = 1.2
DIFFICULTY_MULTIPLIER_HARD = 1.5

PERFORMANCE_MULTIPLIER_FAIL = 0.0
PERFORMANCE_MULTIPLIER_NEW_GRIT = 1.2
PERFORMANCE_MULTIPLIER_NEW_CLEAN = 1.0
PERFORMANCE_MULTIPLIER_REVIEW = 0.3

SCAFFOLDING_MULTIPLIER_REVEALED = 0.5
SCAFFOLDING_MULTIPLIER_NONE = 1.0
