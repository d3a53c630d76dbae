"""
Unit Tests - Fitness Scoring
"""
import pytest

from pillowstore.domain.entities import Firmness, SleepPosition
from pillowstore.domain.scoring import (
    FitnessScores,
    calculate_preview_score,
    calculate_scores,
    recommend_pillow_profile,
)


class TestCalculateScores:
    """Tests for the authenticated measurement formula"""

    def test_ideal_back_sleeper(self):
        scores = calculate_scores(5, 7, "back")

        assert scores == FitnessScores(sleep_score=98, comfort_score=85, posture_score=97)

    def test_short_wide_stomach_sleeper(self):
        scores = calculate_scores(3, 9, SleepPosition.STOMACH)

        assert scores.as_dict() == {"sleep_score": 54, "comfort_score": 60, "posture_score": 57}

    def test_side_sleeper(self):
        scores = calculate_scores(5, 7, "side")

        assert scores.sleep_score == 95
        assert scores.comfort_score == 90
        assert scores.posture_score == 92

    @pytest.mark.parametrize("length,expected_sleep,expected_posture", [
        (4, 98, 97),
        (6, 98, 97),
        (6.5, 80, 97),
        (6.6, 80, 77),
    ])
    def test_length_boundaries_are_inclusive(self, length, expected_sleep, expected_posture):
        scores = calculate_scores(length, 7, "back")

        assert scores.sleep_score == expected_sleep
        assert scores.posture_score == expected_posture

    @pytest.mark.parametrize("width,expected_comfort", [
        (5.5, 85),
        (8.5, 85),
        (5.4, 60),
        (8.6, 65),
    ])
    def test_comfort_width_boundaries(self, width, expected_comfort):
        assert calculate_scores(5, width, "back").comfort_score == expected_comfort

    def test_scores_stay_in_range(self):
        for length in (2, 3.9, 5, 6.4, 10):
            for width in (2, 5, 7, 9, 20):
                for position in SleepPosition:
                    for score in calculate_scores(length, width, position).as_dict().values():
                        assert 0 <= score <= 100

    def test_unknown_position_rejected(self):
        with pytest.raises(ValueError):
            calculate_scores(5, 7, "upside-down")


class TestPreviewScore:
    """Tests for the guest preview formula"""

    def test_ideal_back_sleeper(self):
        assert calculate_preview_score(5, 7, "back") == 95

    def test_outside_ranges_stomach(self):
        assert calculate_preview_score(3, 9, "stomach") == 60

    def test_differs_from_measurement_formula(self):
        preview = calculate_preview_score(5, 7, "side")
        scores = calculate_scores(5, 7, "side")

        assert preview == 93
        assert preview != scores.sleep_score


class TestPillowRecommendation:
    """Tests for pillow profile suggestions"""

    def test_medium_profile(self):
        profile = recommend_pillow_profile(5, 7, "back")

        assert profile.loft == "medium"
        assert profile.firmness is Firmness.MEDIUM

    def test_side_sleeper_gets_high_firm(self):
        profile = recommend_pillow_profile(5, 7, "side")

        assert profile.loft == "high"
        assert profile.firmness is Firmness.FIRM

    def test_stomach_sleeper_gets_low_soft(self):
        profile = recommend_pillow_profile(3, 3, "stomach")

        assert profile.loft == "low"
        assert profile.firmness is Firmness.SOFT

    def test_low_back_sleeper_gets_medium_soft(self):
        assert recommend_pillow_profile(3, 3, "back").firmness is Firmness.MEDIUM_SOFT

    def test_high_back_sleeper_gets_medium_firm(self):
        assert recommend_pillow_profile(6, 8, "back").firmness is Firmness.MEDIUM_FIRM
