"""
Pure economy formulas.

Every number the engine credits or charges is computed here, from plain
inputs, so the rules can be tested without a store, a clock or an event
loop. Services read the tunable parameters from ``ConfigManager`` and pass
them in.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional

from portal_economy.domain.models import MAX_RARITY, Character, PlayerState
from portal_economy.modules.shared import constants as C


def generation_rate(state: PlayerState, base_speed: float = C.BASE_SPEED) -> float:
    """
    Coins generated per tick.

    ``base_speed`` plus the effective speed of the selected income source;
    an unset or dangling selection contributes nothing.
    """
    selected = state.selected_character
    if selected is None:
        return base_speed
    return base_speed + selected.effective_speed


def offline_credit(
    elapsed_seconds: float,
    rate: float,
    *,
    min_seconds: float = C.OFFLINE_MIN_SECONDS,
    max_seconds: float = C.OFFLINE_MAX_SECONDS,
    offline_rate: float = C.OFFLINE_RATE,
) -> int:
    """
    Coins earned while away.

    >>> offline_credit(90 * 60, 2.0)
    90
    >>> offline_credit(5, 2.0)
    0
    """
    if elapsed_seconds < min_seconds:
        return 0
    minutes = min(elapsed_seconds, max_seconds) / 60
    return math.floor(minutes * rate * offline_rate)


def level_threshold(level: int, points_per_level: int = C.POINTS_PER_LEVEL) -> int:
    """Reward points at which ``level`` advances to ``level + 1``."""
    return level * points_per_level


def points_to_next_level(state: PlayerState, points_per_level: int = C.POINTS_PER_LEVEL) -> int:
    return max(0, level_threshold(state.level, points_per_level) - state.reward_points)


def level_reward(level: int, per_level: int = C.LEVEL_REWARD_PER_LEVEL) -> int:
    return level * per_level


def upgrade_cost(character_level: int, per_level: int = C.UPGRADE_COST_PER_LEVEL) -> int:
    return character_level * per_level


def sell_value(
    character: Character,
    per_level: int = C.SELL_VALUE_PER_LEVEL,
    per_rarity: int = C.SELL_VALUE_PER_RARITY,
) -> int:
    return character.character_level * per_level + character.rarity * per_rarity


def fusion_level(first: Character, second: Character) -> int:
    return max(first.character_level, second.character_level) + 1


def fusion_base_speed(
    first: Character,
    second: Character,
    divisor: float = C.FUSION_SPEED_DIVISOR,
) -> float:
    return (first.base_speed + second.base_speed) / divisor


def fusion_rarity(
    first: Character,
    second: Character,
    divisor: float = C.FUSION_RARITY_DIVISOR,
) -> int:
    """
    Rarity of a fusion result, clamped to the maximum tier.

    >>> # rarities 5 and 5 -> ceil(10 / 1.5) = 7 -> 5
    """
    return min(MAX_RARITY, math.ceil((first.rarity + second.rarity) / divisor))


def next_streak(last_claim: Optional[date], today: date, previous_streak: int) -> int:
    """Streak continues only when the previous claim was exactly yesterday."""
    if last_claim is not None and last_claim == today - timedelta(days=1):
        return previous_streak + 1
    return 1


def daily_bonus(
    streak: int,
    *,
    base_bonus: int = C.DAILY_BASE_BONUS,
    streak_divisor: int = C.DAILY_STREAK_DIVISOR,
    max_multiplier: float = C.DAILY_MAX_MULTIPLIER,
) -> int:
    """
    Coins for a daily claim at ``streak``.

    >>> [daily_bonus(s) for s in (1, 2, 3, 6, 9, 12)]
    [16, 33, 50, 100, 150, 150]
    """
    return math.floor(base_bonus * min(max_multiplier, streak / streak_divisor))
