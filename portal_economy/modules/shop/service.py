"""
Character shop.

Purpose
-------
Sell a fixed pool of exclusive characters for coins. Each UTC day shows a
rotation of ``daily_offer_count`` offers drawn from the pool; the draw is
seeded by the date, so every call on the same day returns the same offers.

Rules
-----
- The shop opens at ``unlock_level`` (10).
- Only offers in today's rotation can be bought.
- An offer cannot be bought twice, needs its own ``required_level`` and
  costs ``coin_price`` coins.
- The purchased character keeps the offer's fixed rarity.

Configuration Keys
------------------
- economy.shop.unlock_level      : int        (default 10)
- economy.shop.daily_offer_count : int        (default 4)
- economy.shop.offers            : list[dict] (no default; an empty shop when unset)

Events
------
- shop.offer_purchased {"offer_id", "price", "coins"}
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, timezone
from logging import Logger
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from portal_economy.core.clock import Clock
from portal_economy.core.config.errors import ConfigValidationError
from portal_economy.domain.models import (
    CatalogCharacter,
    Character,
    CharacterId,
    PlayerState,
)
from portal_economy.modules.collection.service import new_character, validate_character_id
from portal_economy.modules.shared import constants as C
from portal_economy.modules.shared.base_service import BaseService
from portal_economy.modules.shared.exceptions import (
    InsufficientFundsError,
    InvalidOperationError,
    LevelRequirementError,
    NotFoundError,
    PortalDomainException,
    ShopLockedError,
)
from portal_economy.modules.state.store import StateStore

if TYPE_CHECKING:
    from portal_economy.core.config.manager import ConfigManager
    from portal_economy.core.event.bus import EventBus


@dataclass(frozen=True)
class ShopOffer:
    """A purchasable character with a fixed price, level gate and rarity."""

    id: CharacterId
    name: str
    image: str
    coin_price: int
    required_level: int
    rarity: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ShopOffer:
        """
        Build an offer from a config entry.

        Raises
        ------
        ConfigValidationError
            If a field is missing or has the wrong type.
        """
        try:
            return cls(
                id=raw["id"],
                name=str(raw["name"]),
                image=str(raw.get("image", "")),
                coin_price=int(raw["coin_price"]),
                required_level=int(raw.get("required_level", 1)),
                rarity=int(raw["rarity"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigValidationError("economy.shop.offers", f"bad offer {raw!r}: {exc}") from exc

    def as_catalog_entry(self) -> CatalogCharacter:
        return CatalogCharacter(id=self.id, name=self.name, image=self.image)


def rotate_offers(pool: List[ShopOffer], day: date, count: int) -> List[ShopOffer]:
    """Deterministic per-day draw of ``count`` offers (all of them if the pool is smaller)."""
    rng = random.Random(day.isoformat())
    return rng.sample(pool, min(count, len(pool)))


class ShopService(BaseService):
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

    @property
    def unlock_level(self) -> int:
        return int(self.get_config("economy.shop.unlock_level", C.SHOP_UNLOCK_LEVEL))

    def offer_pool(self) -> List[ShopOffer]:
        raw_offers = self.get_config("economy.shop.offers")
        if raw_offers is None:
            self.log.warning(
                "No shop offers configured; the shop is empty",
                extra={"config_key": "economy.shop.offers"},
            )
            return []
        if not isinstance(raw_offers, list):
            raise ConfigValidationError("economy.shop.offers", "must be a list of offers")
        return [ShopOffer.from_mapping(raw) for raw in raw_offers]

    def is_open(self, state: Optional[PlayerState] = None) -> bool:
        current = state if state is not None else self._store.snapshot
        return current.level >= self.unlock_level

    def daily_offers(self, day: Optional[date] = None) -> List[ShopOffer]:
        """Offers on sale for ``day`` (today in UTC by default)."""
        if day is None:
            day = self._clock.now().astimezone(timezone.utc).date()
        count = int(self.get_config("economy.shop.daily_offer_count", C.SHOP_DAILY_OFFER_COUNT))
        return rotate_offers(self.offer_pool(), day, count)

    async def purchase_offer(self, offer_id: CharacterId) -> Character:
        """
        Buy one of today's offers.

        Returns
        -------
        Character
            The newly unlocked character.

        Raises
        ------
        ShopLockedError
            Below the shop's unlock level.
        NotFoundError
            If ``offer_id`` is not in today's rotation.
        InvalidOperationError
            If the character is already owned.
        LevelRequirementError
            Below the offer's required level.
        InsufficientFundsError
            If coins are below the offer's price.
        """
        validate_character_id(offer_id, "offer_id")
        unlock_level = self.unlock_level
        offers = {offer.id: offer for offer in self.daily_offers()}

        def transition(state: PlayerState) -> PlayerState:
            if state.level < unlock_level:
                raise ShopLockedError(unlock_level, state.level)
            offer = offers.get(offer_id)
            if offer is None:
                raise NotFoundError("ShopOffer", offer_id)
            if state.owns(offer.id):
                raise InvalidOperationError("purchase_offer", "character is already unlocked")
            if state.level < offer.required_level:
                raise LevelRequirementError("purchase_offer", offer.required_level, state.level)
            if state.coins < offer.coin_price:
                raise InsufficientFundsError(required=offer.coin_price, current=state.coins)

            purchased = new_character(offer.as_catalog_entry(), offer.rarity, self._clock.now())
            return state.with_coins(state.coins - offer.coin_price).with_character_added(purchased)

        try:
            change = await self._store.mutate(transition, operation="purchase_offer")
        except PortalDomainException as exc:
            self.log_rejection("purchase_offer", exc, offer_id=offer_id)
            raise

        purchased = change.current.unlocked_characters[-1]
        price = offers[offer_id].coin_price
        self.log_operation("purchase_offer", offer_id=offer_id, price=price)
        await self.emit_event(
            "shop.offer_purchased",
            {"offer_id": offer_id, "price": price, "coins": change.current.coins},
        )
        return purchased
