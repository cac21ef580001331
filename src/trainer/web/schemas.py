"""Pydantic schemas for Web API.

Serialization models for recommendations, attempts and skill progress.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


# =============================================================================
# RECOMMENDATION SCHEMAS
# =============================================================================


class ProblemResponse(BaseModel):
    """A recommended problem."""

    id: int
    title: str
    url: str
    difficulty: str
    label: str
    tier: str
    skills: list[str] = Field(default_factory=list)


class NextResponse(BaseModel):
    """Response for the next-problem request; null when nothing qualifies."""

    recommendation: ProblemResponse | None = None


# =============================================================================
# ATTEMPT SCHEMAS
# =============================================================================


class AttemptCreate(BaseModel):
    """Request body for submitting an attempt."""

    problem_id: int
    time_minutes: float = Field(..., ge=0)
    solved: bool
    read_solution: bool = False
    revealed_skills: bool = False


class MasteryChangeResponse(BaseModel):
    """Mastery change for one skill."""

    skill_id: int
    old_mastery: float
    new_mastery: float
    attempts: int


class AttemptResponse(BaseModel):
    """Response for a recorded attempt."""

    attempt_id: int
    problem_id: int
    canonical_id: int
    is_new: bool
    branch: str
    ease_factor: float
    interval_days: float
    next_review_ts: int
    mastery: list[MasteryChangeResponse] = Field(default_factory=list)


# =============================================================================
# PROGRESS SCHEMAS
# =============================================================================


class SkillResponse(BaseModel):
    """Progress for one skill."""

    skill_id: int
    name: str
    mastery: float
    attempts: int
    unlocked: bool
    locked_by: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class SkillListResponse(BaseModel):
    """Response for list of skills."""

    skills: list[SkillResponse]
    count: int


class ReviewResponse(BaseModel):
    """A scheduled review."""

    problem_id: int
    title: str
    ease_factor: float
    interval_days: float
    next_review_ts: int
    due: bool

    model_config = {"from_attributes": True}


class ScheduleResponse(BaseModel):
    """Response for the review schedule."""

    reviews: list[ReviewResponse]
    count: int


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
