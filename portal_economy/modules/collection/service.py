"""
Collection: unlocking, upgrading, fusing, selling and selecting characters.

Rules
-----
- Unlocking an owned id changes nothing. New characters start at level 1
  with base speed 1 and a uniformly random rarity in [1, 5].
- Upgrading costs ``character_level * upgrade_cost_per_level`` coins.
- Fusing two distinct owned characters replaces both with one child:
  level ``max + 1``, base speed ``(b1 + b2) / fusion_speed_divisor``,
  rarity ``min(5, ceil((r1 + r2) / fusion_rarity_divisor))``. If either
  parent was the income source, the child takes over the selection.
- Selling pays ``level * sell_value_per_level + rarity * sell_value_per_rarity``.
  The selected income source cannot be sold.
- Selecting an income source is not validated against the collection.

Configuration Keys
------------------
- economy.collection.upgrade_cost_per_level : int   (default 100)
- economy.collection.sell_value_per_level   : int   (default 50)
- economy.collection.sell_value_per_rarity  : int   (default 100)
- economy.collection.fusion_speed_divisor   : float (default 1.5)
- economy.collection.fusion_rarity_divisor  : float (default 1.5)

Events
------
- character.unlocked  {"character_id", "name", "rarity"}
- character.upgraded  {"character_id", "character_level", "cost"}
- character.fused     {"character_id", "parents", "rarity", "character_level"}
- character.sold      {"character_id", "value"}
- income.source_selected {"character_id"}
"""

from __future__ import annotations

import random
import secrets
from dataclasses import replace
from datetime import datetime
from logging import Logger
from typing import TYPE_CHECKING, Optional

from portal_economy.core.clock import Clock
from portal_economy.domain.models import (
    MAX_RARITY,
    MIN_RARITY,
    CatalogCharacter,
    Character,
    CharacterId,
    PlayerState,
)
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shared import formulas
from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import (
    InsufficientFundsError,
    InvalidOperationError,
    NotFoundError,
    PortalDomainException,
    ProtectedAssetError,
    ValidationError,
)
from portal_economy.modules.state.store import StateStore

if TYPE_CHECKING:
    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


def validate_character_id(character_id: CharacterId, field: str = "character_id") -> None:
    if isinstance(character_id, bool) or not isinstance(character_id, (int, str)):
        raise ValidationError(field, f"must be an int or str, got {type(character_id).__name__}")


def new_character(entry: CatalogCharacter, rarity: int, unlock_date: datetime) -> Character:
    """A freshly unlocked level-1 character."""
    return Character(
        id=entry.id,
        name=entry.name,
        image=entry.image,
        rarity=rarity,
        unlock_date=unlock_date,
    )


def fusion_id(state: PlayerState, now: datetime) -> str:
    """``fusion-<epoch millis>``, bumped past any id already in the collection."""
    millis = int(now.timestamp() * 1000)
    while state.owns(f"{C.FUSION_ID_PREFIX}{millis}"):
        millis += 1
    return f"{C.FUSION_ID_PREFIX}{millis}"


class CollectionService(BaseService):
    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._clock = clock
        self._rng = rng or secrets.SystemRandom()

    # =========================================================================
    # Unlock
    # =========================================================================

    async def unlock_character(self, entry: CatalogCharacter) -> PlayerState:
        """Add a catalog character to the collection unless it is already owned."""
        validate_character_id(entry.id, "entry.id")
        rarity = self._rng.randint(MIN_RARITY, MAX_RARITY)
        unlocked: Optional[Character] = None

        def transition(state: PlayerState) -> PlayerState:
            nonlocal unlocked
            if state.owns(entry.id):
                return state
            unlocked = new_character(entry, rarity, self._clock.now())
            return state.with_character_added(unlocked)

        change = await self._store.mutate(transition, operation="unlock_character")

        if unlocked is None:
            self.log.debug(
                "Character already owned; unlock ignored",
                extra={"operation": "unlock_character", "character_id": entry.id},
            )
            return change.current

        self.log_operation("unlock_character", character_id=entry.id, rarity=unlocked.rarity)
        await self.emit_event(
            "character.unlocked",
            {"character_id": entry.id, "name": entry.name, "rarity": unlocked.rarity},
        )
        return change.current

    # =========================================================================
    # Upgrade
    # =========================================================================

    async def upgrade_character(self, character_id: CharacterId) -> Character:
        """
        Raise a character's level by one.

        Raises
        ------
        NotFoundError
            If the character is not owned.
        InsufficientFundsError
            If coins are below ``character_level * upgrade_cost_per_level``.
        """
        validate_character_id(character_id)
        per_level = int(
            self.get_config("economy.collection.upgrade_cost_per_level", C.UPGRADE_COST_PER_LEVEL)
        )
        cost = 0

        def transition(state: PlayerState) -> PlayerState:
            nonlocal cost
            character = state.find_character(character_id)
            if character is None:
                raise NotFoundError("Character", character_id)
            cost = formulas.upgrade_cost(character.character_level, per_level)
            if state.coins < cost:
                raise InsufficientFundsError(required=cost, current=state.coins)
            return state.with_character_replaced(character.upgraded()).with_coins(
                state.coins - cost
            )

        try:
            change = await self._store.mutate(transition, operation="upgrade_character")
        except PortalDomainException as exc:
            self.log_rejection("upgrade_character", exc, character_id=character_id)
            raise

        upgraded = change.current.find_character(character_id)
        if upgraded is None:
            raise NotFoundError("Character", character_id)
        self.log_operation(
            "upgrade_character",
            character_id=character_id,
            character_level=upgraded.character_level,
            cost=cost,
        )
        await self.emit_event(
            "character.upgraded",
            {"character_id": character_id, "character_level": upgraded.character_level, "cost": cost},
        )
        return upgraded

    # =========================================================================
    # Income source
    # =========================================================================

    async def select_income_source(self, character_id: CharacterId) -> PlayerState:
        """Select the income source; unknown ids are accepted and earn nothing."""
        validate_character_id(character_id)

        def transition(state: PlayerState) -> PlayerState:
            return replace(state, selected_income_source=character_id)

        change = await self._store.mutate(transition, operation="select_income_source")
        if not change.current.owns(character_id):
            self.log.warning(
                "Selected income source is not in the collection",
                extra={"operation": "select_income_source", "character_id": character_id},
            )
        self.log_operation("select_income_source", character_id=character_id)
        await self.emit_event("income.source_selected", {"character_id": character_id})
        return change.current

    # =========================================================================
    # Fusion
    # =========================================================================

    async def fuse_characters(self, first_id: CharacterId, second_id: CharacterId) -> Character:
        """
        Consume two owned characters and add their fusion.

        Returns
        -------
        Character
            The new fusion character.

        Raises
        ------
        InvalidOperationError
            If both ids are the same.
        NotFoundError
            If either character is not owned.
        """
        validate_character_id(first_id, "first_id")
        validate_character_id(second_id, "second_id")
        speed_divisor = float(
            self.get_config("economy.collection.fusion_speed_divisor", C.FUSION_SPEED_DIVISOR)
        )
        rarity_divisor = float(
            self.get_config("economy.collection.fusion_rarity_divisor", C.FUSION_RARITY_DIVISOR)
        )

        def transition(state: PlayerState) -> PlayerState:
            if first_id == second_id:
                raise InvalidOperationError(
                    "fuse_characters", "a character cannot be fused with itself"
                )
            first = state.find_character(first_id)
            if first is None:
                raise NotFoundError("Character", first_id)
            second = state.find_character(second_id)
            if second is None:
                raise NotFoundError("Character", second_id)

            now = self._clock.now()
            child = Character(
                id=fusion_id(state, now),
                name=f"Fusion: {first.name} & {second.name}",
                image=first.image,
                rarity=formulas.fusion_rarity(first, second, rarity_divisor),
                unlock_date=now,
                character_level=formulas.fusion_level(first, second),
                base_speed=formulas.fusion_base_speed(first, second, speed_divisor),
                is_fusion=True,
                parents=(first_id, second_id),
            )
            fused = state.without_characters((first_id, second_id)).with_character_added(child)
            if state.selected_income_source in (first_id, second_id):
                fused = replace(fused, selected_income_source=child.id)
            return fused

        try:
            change = await self._store.mutate(transition, operation="fuse_characters")
        except PortalDomainException as exc:
            self.log_rejection(
                "fuse_characters", exc, first_id=first_id, second_id=second_id
            )
            raise

        # the child is appended last by the transition
        child = change.current.unlocked_characters[-1]
        self.log_operation(
            "fuse_characters",
            character_id=child.id,
            parents=[first_id, second_id],
            rarity=child.rarity,
            character_level=child.character_level,
        )
        await self.emit_event(
            "character.fused",
            {
                "character_id": child.id,
                "parents": [first_id, second_id],
                "rarity": child.rarity,
                "character_level": child.character_level,
            },
        )
        return child

    # =========================================================================
    # Sell
    # =========================================================================

    async def sell_character(self, character_id: CharacterId) -> int:
        """
        Remove a character for coins.

        Returns
        -------
        int
            Coins credited.

        Raises
        ------
        NotFoundError
            If the character is not owned.
        ProtectedAssetError
            If the character is the selected income source.
        """
        validate_character_id(character_id)
        per_level = int(
            self.get_config("economy.collection.sell_value_per_level", C.SELL_VALUE_PER_LEVEL)
        )
        per_rarity = int(
            self.get_config("economy.collection.sell_value_per_rarity", C.SELL_VALUE_PER_RARITY)
        )
        value = 0

        def transition(state: PlayerState) -> PlayerState:
            nonlocal value
            character = state.find_character(character_id)
            if character is None:
                raise NotFoundError("Character", character_id)
            if state.selected_income_source == character_id:
                raise ProtectedAssetError(character_id, "it is the selected income source")
            value = formulas.sell_value(character, per_level, per_rarity)
            return state.without_characters((character_id,)).with_coins(state.coins + value)

        try:
            await self._store.mutate(transition, operation="sell_character")
        except PortalDomainException as exc:
            self.log_rejection("sell_character", exc, character_id=character_id)
            raise

        self.log_operation("sell_character", character_id=character_id, value=value)
        await self.emit_event("character.sold", {"character_id": character_id, "value": value})
        return value
