"""Configuration package for the practice trainer."""

from trainer.config.app_config import (
    AppConfig,
    PathsConfig,
    SchedulerConfig,
    clear_config_cache,
    configure_logging,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "PathsConfig",
    "SchedulerConfig",
    "clear_config_cache",
    "configure_logging",
    "load_app_config",
]
