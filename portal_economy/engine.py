"""
EconomyEngine: the facade callers use.

Purpose
-------
Wire the state store, the services and the income ticker together and
expose the economy operations as one object. The engine is constructed
explicitly; ``build_engine()`` wires one from ``Config``.

Lifecycle
---------
1. ``start()``: load the snapshot (defaults on absence/corruption),
   reconcile offline income, subscribe the ticker to rate changes, arm it
2. Operations: every one runs as a single atomic store transition
3. ``shutdown()``: stop the ticker, drain background listeners, close
   the storage adapter

Observers subscribe to ``engine.event_bus``; every committed change is
published as ``economy.state_changed`` with ``previous``/``current``
snapshots.
"""

from __future__ import annotations

import random
from dataclasses import asdict
from datetime import date
from logging import Logger
from typing import Any, Dict, List, Optional

from portal_economy.core.clock import Clock, SystemClock
from portal_economy.core.config.config import Config, StateBackend
from portal_economy.core.config.manager import ConfigManager
from portal_economy.core.event.bus import EventBus
from portal_economy.core.logging.logger import LogContext, get_logger, get_logging_health
from portal_economy.domain.models import CatalogCharacter, Character, CharacterId, PlayerState
from portal_economy.modules.collection.service import CollectionService
from portal_economy.modules.daily.service import DailyService
from portal_economy.modules.income.service import IncomeService, IncomeTicker
from portal_economy.modules.progression.service import ProgressionService
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shop.service import ShopOffer, ShopService
from portal_economy.modules.state.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    RedisPersistence,
    StatePersistence,
)
from portal_economy.modules.state.store import StateStore

logger = get_logger(__name__)


class EconomyEngine:
    """
    Examples
    --------
    >>> engine = EconomyEngine(InMemoryPersistence())
    >>> await engine.start()
    >>> await engine.complete_mission()
    >>> engine.get_snapshot().reward_points
    100
    >>> await engine.shutdown()
    """

    def __init__(
        self,
        persistence: StatePersistence,
        *,
        clock: Optional[Clock] = None,
        event_bus: Optional[EventBus] = None,
        config_manager: type[ConfigManager] = ConfigManager,
        rng: Optional[random.Random] = None,
        profile_id: str = "default",
        service_logger: Optional[Logger] = None,
    ) -> None:
        self.profile_id = profile_id
        self.clock = clock or SystemClock()
        self.event_bus = event_bus or EventBus()
        self._persistence = persistence
        self._config = config_manager
        log = service_logger or get_logger("portal_economy.services")

        self.store = StateStore(persistence, self.clock, self.event_bus)
        self.income = IncomeService(self.store, self.clock, config_manager, self.event_bus, log)
        self.progression = ProgressionService(self.store, config_manager, self.event_bus, log)
        self.collection = CollectionService(
            self.store, self.clock, config_manager, self.event_bus, log, rng=rng
        )
        self.daily = DailyService(self.store, self.clock, config_manager, self.event_bus, log)
        self.shop = ShopService(self.store, self.clock, config_manager, self.event_bus, log)
        self.ticker = IncomeTicker(
            self.income,
            float(
                config_manager.get(
                    "economy.income.tick_interval_seconds", C.TICK_INTERVAL_SECONDS
                )
            ),
            log,
        )
        self._ticker_listener_id: Optional[str] = None
        self._started = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> PlayerState:
        """Load state, credit offline income, then arm the ticker. Idempotent."""
        if self._started:
            return self.store.snapshot

        async with LogContext(profile_id=self.profile_id, operation="engine_start"):
            await self.store.load()
            offline = await self.income.reconcile_offline()
            self._ticker_listener_id = self.ticker.subscribe(self.event_bus)
            self.ticker.start()
            self._started = True

            snapshot = self.store.snapshot
            logger.info(
                "Economy engine started",
                extra={
                    "offline_credit": offline,
                    "coins": snapshot.coins,
                    "level": snapshot.level,
                    "generation_rate": self.income.generation_rate(),
                },
            )
            return snapshot

    async def shutdown(self) -> None:
        if not self._started:
            return

        async with LogContext(profile_id=self.profile_id, operation="engine_shutdown"):
            await self.ticker.stop()
            if self._ticker_listener_id is not None:
                self.event_bus.unsubscribe(C.EVENT_STATE_CHANGED, self._ticker_listener_id)
                self._ticker_listener_id = None
            await self.event_bus.drain()
            await self._persistence.close()
            self._started = False
            logger.info("Economy engine stopped", extra=self.event_bus.get_metrics())

    async def __aenter__(self) -> EconomyEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_snapshot(self) -> PlayerState:
        return self.store.snapshot

    def generation_rate(self) -> float:
        return self.income.generation_rate()

    def progress_to_next_level(self) -> int:
        return self.progression.progress_to_next_level()

    def daily_offers(self, day: Optional[date] = None) -> List[ShopOffer]:
        return self.shop.daily_offers(day)

    # =========================================================================
    # Progression
    # =========================================================================

    async def add_reward_points(self, points: int) -> PlayerState:
        return await self.progression.add_reward_points(points)

    async def complete_mission(self, reward: Optional[int] = None) -> PlayerState:
        return await self.progression.complete_mission(reward)

    async def answer_quiz_correctly(self, reward: Optional[int] = None) -> PlayerState:
        return await self.progression.answer_quiz_correctly(reward)

    async def claim_level_up_reward(self, target_level: int) -> int:
        return await self.progression.claim_level_up_reward(target_level)

    # =========================================================================
    # Collection
    # =========================================================================

    async def unlock_character(self, entry: CatalogCharacter) -> PlayerState:
        return await self.collection.unlock_character(entry)

    async def upgrade_character(self, character_id: CharacterId) -> Character:
        return await self.collection.upgrade_character(character_id)

    async def select_income_source(self, character_id: CharacterId) -> PlayerState:
        return await self.collection.select_income_source(character_id)

    async def fuse_characters(self, first_id: CharacterId, second_id: CharacterId) -> Character:
        return await self.collection.fuse_characters(first_id, second_id)

    async def sell_character(self, character_id: CharacterId) -> int:
        return await self.collection.sell_character(character_id)

    # =========================================================================
    # Coins, daily bonus, shop
    # =========================================================================

    async def add_coins(self, amount: float) -> PlayerState:
        return await self.income.add_coins(amount)

    async def claim_daily_bonus(self) -> int:
        return await self.daily.claim_daily_bonus()

    async def purchase_offer(self, offer_id: CharacterId) -> Character:
        return await self.shop.purchase_offer(offer_id)

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "ticker_running": self.ticker.is_running,
            "ticker_restarts": self.ticker.restart_count,
            "failed_writes": self.store.failed_writes,
            "events": self.event_bus.get_metrics(),
            "logging": asdict(get_logging_health()),
            "config": self._config.health_snapshot(),
        }


# =============================================================================
# Wiring
# =============================================================================


def build_persistence(
    backend: Optional[StateBackend] = None,
    *,
    profile_id: Optional[str] = None,
) -> StatePersistence:
    """Storage adapter for the configured backend."""
    backend = backend or Config.STATE_BACKEND
    profile_id = profile_id or Config.PROFILE_ID

    if backend is StateBackend.MEMORY:
        return InMemoryPersistence()
    if backend is StateBackend.REDIS:
        return RedisPersistence.from_url(
            Config.REDIS_URL,
            profile_id,
            key_prefix=Config.REDIS_KEY_PREFIX,
        )
    path = Config.STATE_FILE_PATH
    if profile_id != "default":
        path = path.with_name(f"{path.stem}.{profile_id}{path.suffix}")
    return JsonFilePersistence(path)


def build_engine(
    *,
    persistence: Optional[StatePersistence] = None,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> EconomyEngine:
    """Engine wired from ``Config`` and ``ConfigManager``."""
    ConfigManager.initialize()
    return EconomyEngine(
        persistence or build_persistence(),
        clock=clock,
        rng=rng,
        profile_id=Config.PROFILE_ID,
    )
