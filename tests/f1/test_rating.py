"""Tests for the Elo-style rating function (F1)."""

import pytest

from mastery.config.app_config import RatingSettings
from mastery.core.rating import clamp, normalize_to_tier, update_mastery_score


SETTINGS = RatingSettings()


class TestUpdateMasteryScore:
    """Tests for update_mastery_score."""

    def test_pass_from_default_adds_half_k(self):
        """A pass at 800 moves to 816."""
        assert update_mastery_score(800, True) == 816

    def test_fail_from_default_subtracts_half_k(self):
        """A fail at 800 moves to 784."""
        assert update_mastery_score(800, False) == 784

    @pytest.mark.parametrize("score", [600, 601, 750, 800, 1200, 1783, 1799, 1800])
    def test_success_never_decreases(self, score):
        """Pass increases the score, strictly unless already at max."""
        new = update_mastery_score(score, True)
        assert new >= score
        if score < SETTINGS.max_mastery:
            assert new > score

    @pytest.mark.parametrize("score", [600, 601, 616, 800, 1200, 1799, 1800])
    def test_failure_never_increases(self, score):
        """Fail decreases the score, strictly unless already at min."""
        new = update_mastery_score(score, False)
        assert new <= score
        if score > SETTINGS.min_mastery:
            assert new < score

    @pytest.mark.parametrize("score", [600, 610, 1790, 1800])
    @pytest.mark.parametrize("success", [True, False])
    def test_output_within_bounds(self, score, success):
        """Result always lies within [min, max]."""
        new = update_mastery_score(score, success)
        assert SETTINGS.min_mastery <= new <= SETTINGS.max_mastery

    def test_clamps_at_max(self):
        """A pass near the cap stops exactly at max."""
        assert update_mastery_score(1795, True) == 1800
        assert update_mastery_score(1800, True) == 1800

    def test_clamps_at_min(self):
        """A fail near the floor stops exactly at min."""
        assert update_mastery_score(605, False) == 600
        assert update_mastery_score(600, False) == 600

    def test_repeated_failures_reach_floor(self):
        """Consecutive fails from 800 end at 600 and stay there."""
        score = 800.0
        history = []
        for _ in range(20):
            score = update_mastery_score(score, False)
            history.append(score)

        assert min(history) == 600
        assert history[-1] == 600
        # 800 -> 600 takes 200 / 16 = 12.5 steps, so the 13th is clamped
        assert history[11] == 608
        assert history[12] == 600

    def test_custom_k_factor(self):
        """K factor comes from settings."""
        settings = RatingSettings(k_factor=10)
        assert update_mastery_score(800, True, settings) == 805


class TestNormalizeToTier:
    """Tests for normalize_to_tier."""

    def test_bounds_map_to_tiers(self):
        assert normalize_to_tier(600) == 1
        assert normalize_to_tier(1800) == 5

    def test_midpoint(self):
        assert normalize_to_tier(1200) == pytest.approx(3.0)

    def test_default_score(self):
        """Default 800 maps to 1 + 4/6 on the tier scale."""
        assert normalize_to_tier(800) == pytest.approx(1 + 200 / 1200 * 4)

    def test_out_of_range_is_clamped(self):
        assert normalize_to_tier(100) == 1
        assert normalize_to_tier(5000) == 5


class TestClamp:
    def test_clamp(self):
        assert clamp(599) == 600
        assert clamp(1801) == 1800
        assert clamp(900) == 900
