"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is absent.

Usage:
    from mastery.config.app_config import load_app_config

    config = load_app_config()
    settings = config.rating
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

DEFAULT_DB_PATH = "db/mastery.db"


class ConfigError(ValueError):
    """Invalid configuration values."""

    pass


@dataclass(frozen=True)
class RatingSettings:
    """Constants of the Elo-style mastery rating."""

    k_factor: float = 32.0
    min_mastery: float = 600.0
    max_mastery: float = 1800.0
    default_mastery: float = 800.0

    def __post_init__(self) -> None:
        if self.k_factor <= 0:
            raise ConfigError(f"k_factor must be positive, got {self.k_factor}")
        if self.min_mastery >= self.max_mastery:
            raise ConfigError(
                f"min_mastery ({self.min_mastery}) must be below "
                f"max_mastery ({self.max_mastery})"
            )
        if not self.min_mastery <= self.default_mastery <= self.max_mastery:
            raise ConfigError(
                f"default_mastery ({self.default_mastery}) must lie within "
                f"[{self.min_mastery}, {self.max_mastery}]"
            )


@dataclass(frozen=True)
class ConceptDefaults:
    """Attributes given to concepts created on first reference."""

    difficulty: int = 2
    description_template: str = "Auto-created concept: {name}"

    def describe(self, name: str) -> str:
        return self.description_template.format(name=name)


@dataclass(frozen=True)
class SelectorSettings:
    """Tuning for the next-task selector."""

    stretch: float = 0.5


@dataclass
class StorageConfig:
    """SQLite storage location and locking behaviour."""

    db_path: str = DEFAULT_DB_PATH
    busy_timeout: float = 5.0


@dataclass
class EvaluationConfig:
    """Remote code-evaluation service."""

    base_url: str = "http://localhost:3001"
    token_env: str | None = "EVAL_SERVICE_TOKEN"
    timeout: float = 30.0

    def get_token(self) -> str:
        """Get service token from environment variable."""
        if self.token_env:
            return os.environ.get(self.token_env, "")
        return ""


@dataclass
class AppConfig:
    """Application-wide configuration."""

    rating: RatingSettings = field(default_factory=RatingSettings)
    concepts: ConceptDefaults = field(default_factory=ConceptDefaults)
    selector: SelectorSettings = field(default_factory=SelectorSettings)
    storage: StorageConfig = field(default_factory=StorageConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "rating": {
            "k_factor": 32,
            "min_mastery": 600,
            "max_mastery": 1800,
            "default_mastery": 800,
        },
        "concepts": {
            "difficulty": 2,
            "description_template": "Auto-created concept: {name}",
        },
        "selector": {
            "stretch": 0.5,
        },
        "storage": {
            "db_path": DEFAULT_DB_PATH,
            "busy_timeout": 5.0,
        },
        "evaluation": {
            "base_url": "http://localhost:3001",
            "token_env": "EVAL_SERVICE_TOKEN",
            "timeout": 30.0,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    rating_data = {**defaults["rating"], **(data.get("rating") or {})}
    rating = RatingSettings(
        k_factor=float(rating_data["k_factor"]),
        min_mastery=float(rating_data["min_mastery"]),
        max_mastery=float(rating_data["max_mastery"]),
        default_mastery=float(rating_data["default_mastery"]),
    )

    concept_data = {**defaults["concepts"], **(data.get("concepts") or {})}
    concepts = ConceptDefaults(
        difficulty=int(concept_data["difficulty"]),
        description_template=concept_data["description_template"],
    )

    selector_data = {**defaults["selector"], **(data.get("selector") or {})}
    selector = SelectorSettings(stretch=float(selector_data["stretch"]))

    storage_data = {**defaults["storage"], **(data.get("storage") or {})}
    storage = StorageConfig(
        db_path=os.environ.get("MASTERY_DB_PATH", storage_data["db_path"]),
        busy_timeout=float(storage_data["busy_timeout"]),
    )

    eval_data = {**defaults["evaluation"], **(data.get("evaluation") or {})}
    evaluation = EvaluationConfig(
        base_url=os.environ.get("EVAL_SERVICE_URL", eval_data["base_url"]),
        token_env=eval_data.get("token_env"),
        timeout=float(eval_data["timeout"]),
    )

    return AppConfig(
        rating=rating,
        concepts=concepts,
        selector=selector,
        storage=storage,
        evaluation=evaluation,
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, using defaults when no file exists.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.

    Raises:
        ConfigError: If the rating constants are inconsistent.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
