"""Skill progress and review schedule endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from trainer.core.trainer import Trainer
from trainer.db.storage import StorageError
from trainer.web.schemas import (
    ReviewResponse,
    ScheduleResponse,
    SkillListResponse,
    SkillResponse,
)
from trainer.web.service import get_trainer

router = APIRouter(prefix="/api", tags=["progress"])


@router.get("/skills", response_model=SkillListResponse)
def list_skills(trainer: Trainer = Depends(get_trainer)) -> SkillListResponse:
    """List mastery, attempts and unlock status for every skill."""
    try:
        rows = trainer.skill_progress()
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    skills = [SkillResponse.model_validate(row) for row in rows]
    return SkillListResponse(skills=skills, count=len(skills))


@router.get("/schedule", response_model=ScheduleResponse)
def review_schedule(trainer: Trainer = Depends(get_trainer)) -> ScheduleResponse:
    """List tracked problems, earliest due first."""
    try:
        reviews = trainer.review_schedule()
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    items = [ReviewResponse.model_validate(r) for r in reviews]
    return ScheduleResponse(reviews=items, count=len(items))
