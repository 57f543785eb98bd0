"""Elo-style mastery rating.

Each attempt is scored against a fixed expectation of 0.5: the learner is
assumed to have even odds against the concept regardless of the current
score. A pass moves the score up by K/2, a fail moves it down by K/2, and
the result is clamped to [min_mastery, max_mastery].
"""

from __future__ import annotations

from mastery.config.app_config import RatingSettings

EXPECTED_OUTCOME = 0.5

# Difficulty tiers used by tasks and concepts
MIN_TIER = 1
MAX_TIER = 5

DEFAULT_SETTINGS = RatingSettings()


def clamp(score: float, settings: RatingSettings = DEFAULT_SETTINGS) -> float:
    """Clamp a score into the configured mastery bounds."""
    return max(settings.min_mastery, min(settings.max_mastery, score))


def update_mastery_score(
    current_score: float,
    success: bool,
    settings: RatingSettings = DEFAULT_SETTINGS,
) -> float:
    """Compute the new mastery score after one attempt.

    Args:
        current_score: Score before the attempt
        success: Whether the attempt passed
        settings: Rating constants (K factor and bounds)

    Returns:
        New score within [min_mastery, max_mastery]
    """
    actual = 1.0 if success else 0.0
    delta = settings.k_factor * (actual - EXPECTED_OUTCOME)
    return clamp(current_score + delta, settings)


def normalize_to_tier(score: float, settings: RatingSettings = DEFAULT_SETTINGS) -> float:
    """Map a mastery score linearly onto the 1-5 difficulty scale.

    min_mastery maps to tier 1 and max_mastery to tier 5.
    """
    span = settings.max_mastery - settings.min_mastery
    fraction = (clamp(score, settings) - settings.min_mastery) / span
    return MIN_TIER + fraction * (MAX_TIER - MIN_TIER)
