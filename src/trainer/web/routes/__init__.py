"""Route handlers for Web API."""

from trainer.web.routes.health import router as health_router
from trainer.web.routes.practice import router as practice_router
from trainer.web.routes.progress import router as progress_router

__all__ = [
    "health_router",
    "practice_router",
    "progress_router",
]
