"""
Portal Economy: incremental-game progression engine.

Owns a player's coins, reward points, level and character collection, and
the rules that change them: passive and offline income, leveling, unlocking,
upgrading, fusing, selling, daily streaks and the character shop.
"""

from portal_economy.core.clock import Clock, SystemClock
from portal_economy.domain.models import CatalogCharacter, Character, PlayerState
from portal_economy.engine import EconomyEngine, build_engine, build_persistence

__version__ = "0.1.0"

__all__ = [
    "CatalogCharacter",
    "Character",
    "Clock",
    "EconomyEngine",
    "PlayerState",
    "SystemClock",
    "build_engine",
    "build_persistence",
]
