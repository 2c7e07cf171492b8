"""Tests for parrot_progress/services/leveling.py."""
from __future__ import annotations

import logging
import math

import pytest

from parrot_progress.models import ProgressionState
from parrot_progress.services.leveling import (
    cumulative_xp,
    level_info,
    required_xp,
    resolve_level,
)


class TestRequiredXp:
    @pytest.mark.parametrize("level, expected", [
        (1, 1000), (2, 2828), (3, 5196), (4, 8000), (5, 11180), (10, 31622),
    ])
    def test_known_levels(self, level, expected):
        assert required_xp(level) == expected

    def test_floors_instead_of_rounding(self):
        # 1000 * 6 ** 1.5 = 14696.94...
        assert required_xp(6) == 14696

    def test_matches_curve_for_many_levels(self):
        for level in range(1, 300):
            assert required_xp(level) == math.floor(1000 * level ** 1.5)

    @pytest.mark.parametrize("level", [0, -3])
    def test_rejects_levels_below_one(self, level):
        with pytest.raises(ValueError):
            required_xp(level)


class TestCumulativeXp:
    @pytest.mark.parametrize("level, expected", [
        (1, 0), (2, 1000), (3, 3828), (4, 9024),
    ])
    def test_known_levels(self, level, expected):
        assert cumulative_xp(level) == expected


class TestResolveLevel:
    def test_new_user(self):
        result = resolve_level(0, 1)
        assert result.level == 1
        assert result.current_level_xp == 0
        assert result.next_level_required_xp == 1000
        assert result.leveled_up is False

    def test_just_below_threshold(self):
        result = resolve_level(999, 1)
        assert result.level == 1
        assert result.current_level_xp == 999
        assert result.leveled_up is False

    def test_exact_threshold_levels_up(self):
        result = resolve_level(1000, 1)
        assert result.level == 2
        assert result.current_level_xp == 0
        assert result.next_level_required_xp == 2828
        assert result.leveled_up is True

    def test_crosses_two_thresholds_in_one_pass(self):
        result = resolve_level(3828 + 5, 1)
        assert result.level == 3
        assert result.current_level_xp == 5
        assert result.leveled_up is True

    def test_starting_from_higher_level(self):
        result = resolve_level(cumulative_xp(3) + 10, 3)
        assert result.level == 3
        assert result.current_level_xp == 10
        assert result.leveled_up is False

    def test_loop_post_condition(self):
        for total in range(0, 60000, 137):
            result = resolve_level(total, 1)
            assert result.current_level_xp < required_xp(result.level)
            assert cumulative_xp(result.level) + result.current_level_xp == total

    def test_negative_total_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_level(-1, 1)

    def test_total_below_spent_xp_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_level(500, 3)


class TestLevelInfo:
    def test_reports_in_level_progress(self):
        info = level_info(ProgressionState(user_id="u1", total_xp=1500, level=2))
        assert info.level == 2
        assert info.total_xp == 1500
        assert info.current_level_xp == 500
        assert info.next_level_required_xp == 2828

    def test_stale_level_is_reported_unchanged_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            info = level_info(ProgressionState(user_id="u1", total_xp=5000, level=1))
        assert info.level == 1
        assert info.current_level_xp == 5000
        assert "stale" in caplog.text
