"""Recommendation and attempt endpoints.

Handlers are plain functions: the storage gateway is synchronous, so
FastAPI runs them in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from trainer.core.models import AttemptLog
from trainer.core.trainer import Trainer
from trainer.db.storage import StorageError
from trainer.web.schemas import (
    AttemptCreate,
    AttemptResponse,
    MasteryChangeResponse,
    NextResponse,
    ProblemResponse,
)
from trainer.web.service import get_trainer

router = APIRouter(prefix="/api", tags=["practice"])


@router.get("/next", response_model=NextResponse)
def next_problem(trainer: Trainer = Depends(get_trainer)) -> NextResponse:
    """Get the next recommended problem."""
    try:
        view = trainer.next_recommendation()
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    if view is None:
        return NextResponse(recommendation=None)
    return NextResponse(recommendation=ProblemResponse(**view.to_dict()))


@router.post("/attempts", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
def submit_attempt(
    attempt: AttemptCreate,
    trainer: Trainer = Depends(get_trainer),
) -> AttemptResponse:
    """Submit an attempt."""
    result = trainer.submit_attempt(
        AttemptLog(
            problem_id=attempt.problem_id,
            time_minutes=attempt.time_minutes,
            solved=attempt.solved,
            read_solution=attempt.read_solution,
            revealed_skills=attempt.revealed_skills,
        )
    )

    if not result.success or result.outcome is None:
        code = (
            status.HTTP_404_NOT_FOUND
            if result.error == "not_found"
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        raise HTTPException(status_code=code, detail=result.message)

    outcome = result.outcome
    rep = outcome.repetition
    return AttemptResponse(
        attempt_id=outcome.attempt_id,
        problem_id=attempt.problem_id,
        canonical_id=outcome.resolved.canonical_id,
        is_new=outcome.is_new,
        branch=rep.outcome.value,
        ease_factor=rep.state.ease_factor,
        interval_days=rep.state.interval_days,
        next_review_ts=rep.state.next_review_ts,
        mastery=[
            MasteryChangeResponse(
                skill_id=m.skill_id,
                old_mastery=m.old_mastery,
                new_mastery=m.new_mastery,
                attempts=m.attempts,
            )
            for m in outcome.mastery
        ],
    )
