"""Unit tests for XP level and reward-token derivation."""

import pytest

from dna_community.gamification.levels import (
    compute_level,
    max_tokens_for_level,
    next_token_level,
    token_milestones,
    xp_to_next_token,
)


class TestComputeLevel:
    @pytest.mark.parametrize(
        ("xp", "level"),
        [(0, 0), (99, 0), (100, 1), (950, 9), (999, 9), (1000, 10), (1100, 11), (25_049, 250)],
    )
    def test_level_is_floor_of_hundreds(self, xp: int, level: int) -> None:
        assert compute_level(xp) == level

    def test_negative_xp_is_level_zero(self) -> None:
        assert compute_level(-50) == 0


class TestTokens:
    @pytest.mark.parametrize(("level", "tokens"), [(0, 0), (9, 0), (10, 1), (19, 1), (20, 2), (115, 11)])
    def test_one_token_per_ten_levels(self, level: int, tokens: int) -> None:
        assert max_tokens_for_level(level) == tokens

    def test_milestones_up_to_level(self) -> None:
        assert token_milestones(9) == []
        assert token_milestones(10) == [10]
        assert token_milestones(35) == [10, 20, 30]

    def test_milestone_count_matches_token_count(self) -> None:
        for level in range(0, 120):
            assert len(token_milestones(level)) == max_tokens_for_level(level)

    def test_next_token_level(self) -> None:
        assert next_token_level(0) == 10
        assert next_token_level(9) == 10
        assert next_token_level(10) == 20
        assert next_token_level(11) == 20

    def test_xp_to_next_token(self) -> None:
        assert xp_to_next_token(950) == 50
        assert xp_to_next_token(1000) == 1000
        assert xp_to_next_token(1100) == 900
