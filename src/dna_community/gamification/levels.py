"""XP to level and reward-token derivation.

Levels are a flat 100 XP each; one reward token is earned per 10 levels.
"""

from __future__ import annotations

import math

XP_PER_LEVEL = 100
LEVELS_PER_TOKEN = 10


def compute_level(total_xp: int) -> int:
    """Level for an XP total (never negative)."""
    return max(total_xp, 0) // XP_PER_LEVEL


def max_tokens_for_level(level: int) -> int:
    """Number of tokens a user at ``level`` has earned in total."""
    return max(level, 0) // LEVELS_PER_TOKEN


def token_milestones(level: int) -> list[int]:
    """Milestone levels (10, 20, ...) reached at ``level``."""
    return list(range(LEVELS_PER_TOKEN, level + 1, LEVELS_PER_TOKEN))


def next_token_level(level: int) -> int:
    """The next milestone strictly above ``level``."""
    return math.ceil((level + 1) / LEVELS_PER_TOKEN) * LEVELS_PER_TOKEN


def xp_to_next_token(total_xp: int) -> int:
    """XP still needed to reach the next milestone."""
    target = next_token_level(compute_level(total_xp)) * XP_PER_LEVEL
    return max(0, target - total_xp)
