"""
Built-in balance defaults.

These are the fallbacks services pass to ``ConfigManager.get``; the shipped
``config/economy.yaml`` repeats them so they can be tuned without a code
change.
"""

from typing import Final

# Income
BASE_SPEED: Final[float] = 1.0
TICK_INTERVAL_SECONDS: Final[float] = 60.0

# Offline accrual
OFFLINE_MIN_SECONDS: Final[int] = 10
OFFLINE_MAX_SECONDS: Final[int] = 24 * 60 * 60
OFFLINE_RATE: Final[float] = 0.5

# Progression
POINTS_PER_LEVEL: Final[int] = 500
MISSION_REWARD: Final[int] = 100
QUIZ_REWARD: Final[int] = 50
LEVEL_REWARD_PER_LEVEL: Final[int] = 200

# Collection
UPGRADE_COST_PER_LEVEL: Final[int] = 100
SELL_VALUE_PER_LEVEL: Final[int] = 50
SELL_VALUE_PER_RARITY: Final[int] = 100
FUSION_SPEED_DIVISOR: Final[float] = 1.5
FUSION_RARITY_DIVISOR: Final[float] = 1.5
FUSION_ID_PREFIX: Final[str] = "fusion-"

# Daily bonus
DAILY_BASE_BONUS: Final[int] = 50
DAILY_STREAK_DIVISOR: Final[int] = 3
DAILY_MAX_MULTIPLIER: Final[float] = 3.0

# Shop
SHOP_UNLOCK_LEVEL: Final[int] = 10
SHOP_DAILY_OFFER_COUNT: Final[int] = 4

# Event names
EVENT_STATE_CHANGED: Final[str] = "economy.state_changed"
EVENT_PERSISTENCE_FAILED: Final[str] = "economy.persistence_failed"
