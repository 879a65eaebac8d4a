"""
Daily bonus and login streak.

A claim is allowed once per UTC calendar day. Claiming on the day after
the previous claim extends the streak; any gap resets it to 1. The bonus
grows with the streak and caps at ``base_bonus * max_multiplier``.

Configuration Keys
------------------
- economy.daily.base_bonus      : int   (default 50)
- economy.daily.streak_divisor  : int   (default 3)
- economy.daily.max_multiplier  : float (default 3.0)

Events
------
- daily.bonus_claimed {"bonus", "streak", "claimed_on"}
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timezone
from logging import Logger
from typing import TYPE_CHECKING, Optional

from portal_economy.core.clock import Clock
from portal_economy.domain.models import PlayerState
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shared import formulas
from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import AlreadyClaimedTodayError
from portal_economy.modules.state.store import StateStore

if TYPE_CHECKING:
    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


class DailyService(BaseService):
    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._clock = clock

    def today(self) -> date:
        return self._clock.now().astimezone(timezone.utc).date()

    def can_claim(self, state: Optional[PlayerState] = None) -> bool:
        current = state if state is not None else self._store.snapshot
        return current.last_daily_bonus != self.today()

    async def claim_daily_bonus(self) -> int:
        """
        Claim today's bonus.

        Returns
        -------
        int
            Coins credited.

        Raises
        ------
        AlreadyClaimedTodayError
            If today's bonus was already claimed.
        """
        base_bonus = int(self.get_config("economy.daily.base_bonus", C.DAILY_BASE_BONUS))
        divisor = int(self.get_config("economy.daily.streak_divisor", C.DAILY_STREAK_DIVISOR))
        max_multiplier = float(
            self.get_config("economy.daily.max_multiplier", C.DAILY_MAX_MULTIPLIER)
        )
        today = self.today()
        bonus = 0
        streak = 0

        def transition(state: PlayerState) -> PlayerState:
            nonlocal bonus, streak
            if state.last_daily_bonus == today:
                raise AlreadyClaimedTodayError(today)
            streak = formulas.next_streak(state.last_daily_bonus, today, state.daily_bonus_streak)
            bonus = formulas.daily_bonus(
                streak,
                base_bonus=base_bonus,
                streak_divisor=divisor,
                max_multiplier=max_multiplier,
            )
            return replace(
                state,
                coins=state.coins + bonus,
                last_daily_bonus=today,
                daily_bonus_streak=streak,
            )

        try:
            await self._store.mutate(transition, operation="claim_daily_bonus")
        except AlreadyClaimedTodayError as exc:
            self.log_rejection("claim_daily_bonus", exc)
            raise

        self.log_operation("claim_daily_bonus", bonus=bonus, streak=streak)
        await self.emit_event(
            "daily.bonus_claimed",
            {"bonus": bonus, "streak": streak, "claimed_on": today.isoformat()},
        )
        return bonus
