"""
Income: passive coin generation and offline accrual.

Purpose
-------
- Compute the generation rate ``G`` from the selected income source
- Credit ``G`` coins per tick while the engine runs (``IncomeTicker``)
- Credit the time the player was away once per engine start
- Direct coin credits/debits (``add_coins``)

Configuration Keys
------------------
- economy.income.base_speed             : float (default 1.0)
- economy.income.tick_interval_seconds  : float (default 60)
- economy.offline.min_seconds           : int   (default 10)
- economy.offline.max_seconds           : int   (default 86400)
- economy.offline.rate                  : float (default 0.5)

Events
------
- income.tick_credited      {"amount", "coins"}
- income.offline_credited   {"amount", "elapsed_seconds"}
"""

from __future__ import annotations

import asyncio
import math
from datetime import datetime
from logging import Logger
from typing import TYPE_CHECKING, Any, Optional

from portal_economy.core.clock import Clock
from portal_economy.core.event.types import EventPayload, ListenerPriority
from portal_economy.domain.models import PlayerState
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shared import formulas
from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import (
    InsufficientFundsError,
    ValidationError,
    should_alert,
)
from portal_economy.modules.state.store import StateStore

if TYPE_CHECKING:
    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


class IncomeService(BaseService):
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
        self._reconciled_for: Optional[datetime] = None

    @property
    def base_speed(self) -> float:
        return float(self.get_config("economy.income.base_speed", C.BASE_SPEED))

    def generation_rate(self, state: Optional[PlayerState] = None) -> float:
        """Coins per tick for ``state`` (the current snapshot by default)."""
        return formulas.generation_rate(
            state if state is not None else self._store.snapshot, self.base_speed
        )

    async def credit_tick(self) -> float:
        """Credit one tick's worth of coins at the current rate."""
        credited = 0.0

        def transition(state: PlayerState) -> PlayerState:
            nonlocal credited
            credited = formulas.generation_rate(state, self.base_speed)
            return state.with_coins(state.coins + credited)

        change = await self._store.mutate(transition, operation="income_tick")
        self.log.debug(
            "Passive income credited",
            extra={"operation": "income_tick", "amount": credited, "coins": change.current.coins},
        )
        await self.emit_event(
            "income.tick_credited", {"amount": credited, "coins": change.current.coins}
        )
        return credited

    async def reconcile_offline(self) -> int:
        """
        Credit coins for the time since ``last_online``.

        Runs at most once per distinct ``last_online`` value; calling it again
        without an intervening mutation credits nothing.
        """
        snapshot = self._store.snapshot
        if self._reconciled_for == snapshot.last_online:
            return 0

        min_seconds = float(self.get_config("economy.offline.min_seconds", C.OFFLINE_MIN_SECONDS))
        max_seconds = float(self.get_config("economy.offline.max_seconds", C.OFFLINE_MAX_SECONDS))
        offline_rate = float(self.get_config("economy.offline.rate", C.OFFLINE_RATE))

        credited = 0
        elapsed = 0.0

        def transition(state: PlayerState) -> PlayerState:
            nonlocal credited, elapsed
            elapsed = (self._clock.now() - state.last_online).total_seconds()
            credited = formulas.offline_credit(
                elapsed,
                formulas.generation_rate(state, self.base_speed),
                min_seconds=min_seconds,
                max_seconds=max_seconds,
                offline_rate=offline_rate,
            )
            if credited <= 0:
                return state
            return state.with_coins(state.coins + credited)

        change = await self._store.mutate(transition, operation="offline_reconcile")
        self._reconciled_for = change.current.last_online

        if credited > 0:
            self.log_operation(
                "reconcile_offline",
                amount=credited,
                elapsed_seconds=round(elapsed, 1),
                clamped=elapsed > max_seconds,
            )
            await self.emit_event(
                "income.offline_credited",
                {"amount": credited, "elapsed_seconds": elapsed},
            )
        else:
            self.log.debug(
                "Offline accrual skipped",
                extra={"operation": "reconcile_offline", "elapsed_seconds": round(elapsed, 1)},
            )
        return credited

    async def add_coins(self, amount: float) -> PlayerState:
        """
        Credit (positive) or debit (negative) coins directly.

        Raises
        ------
        InsufficientFundsError
            If a debit would leave the balance negative.
        ValidationError
            If ``amount`` is not a finite number.
        """
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValidationError("amount", "must be a number")
        if not math.isfinite(amount):
            raise ValidationError("amount", "must be finite")

        def transition(state: PlayerState) -> PlayerState:
            total = state.coins + amount
            if total < 0:
                raise InsufficientFundsError(required=-amount, current=state.coins)
            if not math.isfinite(total):
                raise ValidationError("amount", "balance would overflow")
            return state.with_coins(total)

        try:
            change = await self._store.mutate(transition, operation="add_coins")
        except (InsufficientFundsError, ValidationError) as exc:
            self.log_rejection("add_coins", exc, amount=amount)
            raise
        self.log_operation("add_coins", amount=amount, coins=change.current.coins)
        return change.current


class IncomeTicker:
    """
    The one live-income task.

    The ticker remembers the rate it was armed with. Whenever a committed
    change moves the generation rate, the running task is cancelled and a
    fresh one is armed, so there is never more than one task and the next
    tick is a full interval away.
    """

    def __init__(self, income: IncomeService, interval_seconds: float, logger: Logger) -> None:
        self._income = income
        self._interval = interval_seconds
        self.log = logger
        self._task: Optional[asyncio.Task[Any]] = None
        self._armed_rate: Optional[float] = None
        self.restart_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def armed_rate(self) -> Optional[float]:
        return self._armed_rate

    def start(self) -> None:
        if self.is_running:
            return
        self._armed_rate = self._income.generation_rate()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="portal-economy-income-ticker"
        )
        self.log.debug(
            "Income ticker armed",
            extra={"rate": self._armed_rate, "interval_seconds": self._interval},
        )

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def restart(self) -> None:
        await self.stop()
        self.restart_count += 1
        self.start()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._income.credit_tick()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if should_alert(exc):
                    self.log.exception("Income tick failed; ticker keeps running")
                else:
                    self.log.warning(
                        "Income tick skipped",
                        extra={"error_type": type(exc).__name__, "error_message": str(exc)},
                    )

    async def on_state_changed(self, payload: EventPayload) -> None:
        """Re-arm the ticker when a committed change moved the rate."""
        if not self.is_running:
            return
        rate = self._income.generation_rate(payload["current"])
        if rate == self._armed_rate:
            return
        self.log.info(
            "Generation rate changed; re-arming ticker",
            extra={"previous_rate": self._armed_rate, "rate": rate},
        )
        if self._task is asyncio.current_task():
            # a task cannot await its own cancellation
            self._armed_rate = rate
            return
        await self.restart()

    def subscribe(self, event_bus: EventBus) -> str:
        return event_bus.subscribe(
            C.EVENT_STATE_CHANGED,
            self.on_state_changed,
            priority=ListenerPriority.CRITICAL,
            identifier="income.ticker.rearm",
        )
