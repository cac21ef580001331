"""FastAPI application factory.

Main entry point for the practice trainer Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trainer.config.app_config import configure_logging, load_app_config
from trainer.web.routes import health_router, practice_router, progress_router
from trainer.web.service import reset_trainer

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    config = load_app_config()
    configure_logging(config.log_level)
    logger.info(
        "api_startup",
        db_path=str(config.paths.db_path.absolute()),
        track=config.scheduler.active_track,
    )
    yield
    reset_trainer()
    logger.info("api_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Practice Trainer API",
        description="Web API for the spaced-repetition practice trainer",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(practice_router)
    app.include_router(progress_router)

    return app


# Default app instance for uvicorn
app = create_app()
