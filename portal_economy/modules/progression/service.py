"""
Progression: reward points, leveling and level-up rewards.

Rules
-----
- Reward points only ever grow; level-ups do not consume them.
- After points are added, the level rises by exactly one if the new total
  reaches ``level * points_per_level``. A single large grant never skips
  levels; the next grant re-checks against the new threshold.
- Each level's coin reward (``level * level_reward_per_level``) can be
  claimed once, and only after the level has been reached.

Configuration Keys
------------------
- economy.progression.points_per_level       : int (default 500)
- economy.progression.mission_reward         : int (default 100)
- economy.progression.quiz_reward            : int (default 50)
- economy.progression.level_reward_per_level : int (default 200)

Events
------
- player.reward_points_added {"points", "reward_points", "source"}
- player.leveled_up          {"old_level", "new_level"}
- player.level_reward_claimed {"level", "coins"}
"""

from __future__ import annotations

from dataclasses import replace
from logging import Logger
from typing import TYPE_CHECKING, Optional

from portal_economy.domain.models import PlayerState
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shared import formulas
from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import (
    AlreadyClaimedError,
    LevelRequirementError,
    PortalDomainException,
    ValidationError,
)
from portal_economy.modules.state.store import StateStore

if TYPE_CHECKING:
    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


class ProgressionService(BaseService):
    def __init__(
        self,
        store: StateStore,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store

    @property
    def points_per_level(self) -> int:
        return int(self.get_config("economy.progression.points_per_level", C.POINTS_PER_LEVEL))

    def progress_to_next_level(self, state: Optional[PlayerState] = None) -> int:
        """Reward points still missing before the next level-up."""
        return formulas.points_to_next_level(
            state if state is not None else self._store.snapshot,
            self.points_per_level,
        )

    async def add_reward_points(self, points: int, *, source: str = "direct") -> PlayerState:
        """
        Add reward points and apply at most one level-up.

        Raises
        ------
        ValidationError
            If ``points`` is negative or not an integer.
        """
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError("points", f"must be a non-negative integer, got {points!r}")

        per_level = self.points_per_level

        def transition(state: PlayerState) -> PlayerState:
            total = state.reward_points + points
            level = state.level
            if total >= formulas.level_threshold(level, per_level):
                level += 1
            return replace(state, reward_points=total, level=level)

        change = await self._store.mutate(transition, operation="add_reward_points")
        previous, current = change.previous, change.current

        self.log_operation(
            "add_reward_points",
            points=points,
            source=source,
            reward_points=current.reward_points,
            level=current.level,
        )
        await self.emit_event(
            "player.reward_points_added",
            {"points": points, "reward_points": current.reward_points, "source": source},
        )
        if current.level != previous.level:
            await self.emit_event(
                "player.leveled_up",
                {"old_level": previous.level, "new_level": current.level},
            )
        return current

    async def complete_mission(self, reward: Optional[int] = None) -> PlayerState:
        if reward is None:
            reward = int(self.get_config("economy.progression.mission_reward", C.MISSION_REWARD))
        return await self.add_reward_points(reward, source="mission")

    async def answer_quiz_correctly(self, reward: Optional[int] = None) -> PlayerState:
        if reward is None:
            reward = int(self.get_config("economy.progression.quiz_reward", C.QUIZ_REWARD))
        return await self.add_reward_points(reward, source="quiz")

    async def claim_level_up_reward(self, target_level: int) -> int:
        """
        Collect the one-time coin reward for ``target_level``.

        Returns
        -------
        int
            Coins credited.

        Raises
        ------
        AlreadyClaimedError
            If the reward for ``target_level`` was collected before.
        LevelRequirementError
            If the player has not reached ``target_level``.
        ValidationError
            If ``target_level`` is not an integer of at least 1.
        """
        if isinstance(target_level, bool) or not isinstance(target_level, int) or target_level < 1:
            error = ValidationError(
                "target_level", f"must be an integer of at least 1, got {target_level!r}"
            )
            self.log_rejection("claim_level_up_reward", error, target_level=target_level)
            raise error

        per_level = int(
            self.get_config(
                "economy.progression.level_reward_per_level", C.LEVEL_REWARD_PER_LEVEL
            )
        )
        reward = formulas.level_reward(target_level, per_level)

        def transition(state: PlayerState) -> PlayerState:
            if target_level in state.claimed_level_rewards:
                raise AlreadyClaimedError(target_level)
            if state.level < target_level:
                raise LevelRequirementError("claim_level_up_reward", target_level, state.level)
            return replace(
                state,
                coins=state.coins + reward,
                claimed_level_rewards=state.claimed_level_rewards | {target_level},
            )

        try:
            await self._store.mutate(transition, operation="claim_level_up_reward")
        except PortalDomainException as exc:
            self.log_rejection("claim_level_up_reward", exc, target_level=target_level)
            raise

        self.log_operation("claim_level_up_reward", level=target_level, coins=reward)
        await self.emit_event("player.level_reward_claimed", {"level": target_level, "coins": reward})
        return reward
