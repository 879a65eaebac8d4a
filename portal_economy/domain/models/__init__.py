from portal_economy.domain.models.base import (
    DomainValidationError,
    validate_aware,
    validate_non_negative,
    validate_positive,
    validate_range,
)
from portal_economy.domain.models.character import (
    MAX_RARITY,
    MIN_RARITY,
    CatalogCharacter,
    Character,
    CharacterId,
)
from portal_economy.domain.models.player import PlayerState

__all__ = [
    "CatalogCharacter",
    "Character",
    "CharacterId",
    "DomainValidationError",
    "MAX_RARITY",
    "MIN_RARITY",
    "PlayerState",
    "validate_aware",
    "validate_non_negative",
    "validate_positive",
    "validate_range",
]
