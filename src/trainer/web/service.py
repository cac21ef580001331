"""Trainer instance shared by the API routes.

The API serves a single learner, so one Trainer (one storage connection)
is created lazily and reused across requests.
"""

from __future__ import annotations

import threading

import structlog
from fastapi import HTTPException, status

from trainer.config.app_config import load_app_config
from trainer.core.skill_graph import SkillGraphError
from trainer.core.trainer import Trainer, TrackNotFoundError
from trainer.db.storage import StorageError

logger = structlog.get_logger(__name__)

_trainer: Trainer | None = None
_trainer_lock = threading.Lock()


def get_trainer() -> Trainer:
    """Get the global trainer instance (FastAPI dependency)."""
    global _trainer
    with _trainer_lock:
        if _trainer is None:
            try:
                _trainer = Trainer.from_config(load_app_config())
            except (TrackNotFoundError, StorageError, SkillGraphError) as e:
                logger.error("api.trainer_unavailable", error=str(e))
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=str(e),
                )
            logger.info("api.trainer_opened", track=_trainer.track_name)
        return _trainer


def reset_trainer() -> None:
    """Close and drop the trainer (for shutdown and testing)."""
    global _trainer
    with _trainer_lock:
        if _trainer is not None:
            _trainer.close()
        _trainer = None
