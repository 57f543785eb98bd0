"""Configuration package for the mastery engine."""

from mastery.config.app_config import (
    AppConfig,
    ConceptDefaults,
    ConfigError,
    EvaluationConfig,
    RatingSettings,
    SelectorSettings,
    StorageConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "ConceptDefaults",
    "ConfigError",
    "EvaluationConfig",
    "RatingSettings",
    "SelectorSettings",
    "StorageConfig",
    "clear_config_cache",
    "load_app_config",
]
