"""
Character Domain Model.

Purpose
-------
Immutable value object for an owned collectible character. Catalog
characters keep the catalog's integer id; fusion results carry a synthetic
``"fusion-<millis>"`` string id and remember both parent ids.

Invariants
----------
- ``character_level >= 1``; only upgrades and fusion raise it
- ``base_speed > 0``
- ``1 <= rarity <= 5``
- ``unlock_date`` is timezone-aware
- ``parents`` is set exactly when ``is_fusion`` is true

Effective speed is derived on every read and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Union

from portal_economy.domain.models.base import (
    DomainValidationError,
    validate_aware,
    validate_positive,
    validate_range,
)

CharacterId = Union[int, str]

MIN_RARITY = 1
MAX_RARITY = 5

SPEED_PER_LEVEL = 0.5
SPEED_PER_RARITY = 0.5


@dataclass(frozen=True)
class CatalogCharacter:
    """The only catalog fields the economy consumes."""

    id: CharacterId
    name: str
    image: str


@dataclass(frozen=True)
class Character:
    """
    An owned character.

    Attributes
    ----------
    id : CharacterId
        Catalog id (int) or synthetic fusion id (str)
    name : str
        Display name
    image : str
        Image URL from the catalog (or the first fusion parent)
    rarity : int
        Rarity tier in [1, 5]
    unlock_date : datetime
        When the character entered the collection (UTC)
    character_level : int
        Upgrade level, starts at 1
    base_speed : float
        Base coin generation speed before level and rarity bonuses
    is_fusion : bool
        True for characters produced by fusion
    parents : Optional[tuple[CharacterId, CharacterId]]
        Ids of the fused parents
    """

    id: CharacterId
    name: str
    image: str
    rarity: int
    unlock_date: datetime
    character_level: int = 1
    base_speed: float = 1.0
    is_fusion: bool = False
    parents: Optional[tuple[CharacterId, CharacterId]] = None

    def __post_init__(self) -> None:
        validate_positive(self.character_level, "character_level")
        validate_positive(self.base_speed, "base_speed")
        validate_range(self.rarity, MIN_RARITY, MAX_RARITY, "rarity")
        validate_aware(self.unlock_date, "unlock_date")
        if self.is_fusion != (self.parents is not None):
            raise DomainValidationError(
                "parents must be set exactly for fusion characters",
                field="parents",
            )

    @property
    def effective_speed(self) -> float:
        """
        Speed contributed to generation when selected as income source.

        Examples
        --------
        >>> Character(1, "Rick", "", rarity=3, unlock_date=now, character_level=2).effective_speed
        2.5
        """
        return (
            self.base_speed
            + (self.character_level - 1) * SPEED_PER_LEVEL
            + (self.rarity - 1) * SPEED_PER_RARITY
        )

    def upgraded(self) -> Character:
        """Return a copy one level higher."""
        return replace(self, character_level=self.character_level + 1)
