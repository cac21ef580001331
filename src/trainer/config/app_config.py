"""Application configuration loader.

Loads configuration from data/config/trainer_config_v1.yaml with built-in
defaults when the file is missing.

Usage:
    from trainer.config.app_config import load_app_config

    config = load_app_config()
    db_path = config.paths.db_path
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/trainer_config_v1.yaml")

# Environment overrides
ENV_DB_PATH = "TRAINER_DB_PATH"
ENV_CATALOG_PATH = "TRAINER_CATALOG_PATH"


@dataclass
class PathsConfig:
    """Filesystem locations."""

    db_path: Path = Path("db/trainer.db")
    catalog_path: Path = Path("data/catalog/neetcode_150.yaml")


@dataclass
class SchedulerConfig:
    """Scheduler defaults."""

    active_track: str = "NeetCode 150"
    random_seed: int | None = None


@dataclass
class AppConfig:
    """Application-wide configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    log_level: str = "warning"


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "paths": {
            "db_path": "db/trainer.db",
            "catalog_path": "data/catalog/neetcode_150.yaml",
        },
        "scheduler": {
            "active_track": "NeetCode 150",
            "random_seed": None,
        },
        "log_level": "warning",
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    paths_data = {**defaults["paths"], **(data.get("paths") or {})}
    paths = PathsConfig(
        db_path=Path(os.environ.get(ENV_DB_PATH) or paths_data["db_path"]),
        catalog_path=Path(os.environ.get(ENV_CATALOG_PATH) or paths_data["catalog_path"]),
    )

    sched_data = {**defaults["scheduler"], **(data.get("scheduler") or {})}
    seed = sched_data.get("random_seed")
    scheduler = SchedulerConfig(
        active_track=str(sched_data["active_track"]),
        random_seed=int(seed) if seed is not None else None,
    )

    return AppConfig(
        paths=paths,
        scheduler=scheduler,
        log_level=str(data.get("log_level") or defaults["log_level"]),
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.debug("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def configure_logging(level: str) -> None:
    """Set the minimum structlog level ("debug", "info", "warning", ...)."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric))


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
