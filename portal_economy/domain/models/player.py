"""
Player State Domain Model.

Purpose
-------
The single immutable value describing a player's economy: currencies,
progression, collection, income selection and daily-bonus streak. Every
engine operation produces a new ``PlayerState``; nothing mutates one in
place.

Responsibilities
----------------
- Validate the economy invariants on construction
- Provide lookups over the collection (by id, selected source)
- Provide small copy-with helpers used by the services' transitions

Non-Responsibilities
--------------------
- Business rules (costs, rewards, rejection reasons) live in the services
- Serialization lives in ``portal_economy.modules.state.codec``

Invariants
----------
- ``coins >= 0`` and ``reward_points >= 0``
- ``level >= 1`` and ``daily_bonus_streak >= 0``
- Character ids are unique within ``unlocked_characters``
- ``last_online`` is timezone-aware

``selected_income_source`` is not required to reference an owned
character; a dangling selection simply contributes no speed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional

from portal_economy.domain.models.base import (
    DomainValidationError,
    validate_aware,
    validate_non_negative,
    validate_positive,
)
from portal_economy.domain.models.character import Character, CharacterId


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable snapshot of the player's economy.

    Attributes
    ----------
    last_online : datetime
        Stamped on every mutation; drives offline accrual
    coins : float
        Spendable currency; fractional only through live ticks
    reward_points : int
        Lifetime points; level-ups never consume them
    level : int
        Player level, starts at 1
    unlocked_characters : tuple[Character, ...]
        Owned characters in unlock order
    selected_income_source : Optional[CharacterId]
        Character whose speed feeds coin generation
    last_daily_bonus : Optional[date]
        UTC calendar date of the last daily-bonus claim
    daily_bonus_streak : int
        Consecutive-day claim counter
    claimed_level_rewards : frozenset[int]
        Levels whose one-time reward has been collected
    """

    last_online: datetime
    coins: float = 0
    reward_points: int = 0
    level: int = 1
    unlocked_characters: tuple[Character, ...] = ()
    selected_income_source: Optional[CharacterId] = None
    last_daily_bonus: Optional[date] = None
    daily_bonus_streak: int = 0
    claimed_level_rewards: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        validate_non_negative(self.coins, "coins")
        validate_non_negative(self.reward_points, "reward_points")
        validate_positive(self.level, "level")
        validate_non_negative(self.daily_bonus_streak, "daily_bonus_streak")
        validate_aware(self.last_online, "last_online")

        ids = [c.id for c in self.unlocked_characters]
        if len(ids) != len(set(ids)):
            raise DomainValidationError(
                "unlocked_characters contains duplicate ids",
                field="unlocked_characters",
            )

    @classmethod
    def default(cls, now: datetime) -> PlayerState:
        """Fresh player: level 1, no coins, empty collection."""
        return cls(last_online=now)

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_character(self, character_id: CharacterId) -> Optional[Character]:
        for character in self.unlocked_characters:
            if character.id == character_id:
                return character
        return None

    def owns(self, character_id: CharacterId) -> bool:
        return self.find_character(character_id) is not None

    @property
    def selected_character(self) -> Optional[Character]:
        """The selected income source, or None when unset or dangling."""
        if self.selected_income_source is None:
            return None
        return self.find_character(self.selected_income_source)

    # =========================================================================
    # Copy-with helpers
    # =========================================================================

    def with_coins(self, coins: float) -> PlayerState:
        return replace(self, coins=coins)

    def with_character_added(self, character: Character) -> PlayerState:
        return replace(self, unlocked_characters=self.unlocked_characters + (character,))

    def with_character_replaced(self, character: Character) -> PlayerState:
        return replace(
            self,
            unlocked_characters=tuple(
                character if c.id == character.id else c for c in self.unlocked_characters
            ),
        )

    def without_characters(self, character_ids: Iterable[CharacterId]) -> PlayerState:
        removed = set(character_ids)
        return replace(
            self,
            unlocked_characters=tuple(c for c in self.unlocked_characters if c.id not in removed),
        )
