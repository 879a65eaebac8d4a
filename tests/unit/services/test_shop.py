"""
Unit tests for ShopService: level gate, daily rotation and purchases.
"""

from datetime import date, timedelta

import pytest

from portal_economy.core.config.errors import ConfigValidationError
from portal_economy.core.config.manager import ConfigManager
from portal_economy.modules.shared.exceptions import (
    InsufficientFundsError,
    InvalidOperationError,
    LevelRequirementError,
    NotFoundError,
    ShopLockedError,
)
from portal_economy.modules.shop.service import ShopOffer, ShopService, rotate_offers


def _shipped_pool():
    return [ShopOffer.from_mapping(raw) for raw in ConfigManager.get("economy.shop.offers")]


@pytest.fixture
def make_shop(make_store, clock, event_bus, service_logger):
    async def factory(state=None):
        store = await make_store(state)
        return ShopService(store, clock, ConfigManager, event_bus, service_logger), store

    return factory


@pytest.mark.unit
class TestRotation:
    def test_same_day_same_offers(self):
        pool = _shipped_pool()

        assert rotate_offers(pool, date(2026, 1, 15), 4) == rotate_offers(pool, date(2026, 1, 15), 4)

    def test_rotation_draws_distinct_offers_from_pool(self):
        pool = _shipped_pool()

        offers = rotate_offers(pool, date(2026, 1, 15), 4)

        assert len(offers) == 4
        assert len({o.id for o in offers}) == 4
        assert all(o in pool for o in offers)

    def test_rotation_changes_across_days(self):
        pool = _shipped_pool()
        start = date(2026, 1, 1)

        draws = {
            tuple(o.id for o in rotate_offers(pool, start + timedelta(days=i), 4))
            for i in range(14)
        }

        assert len(draws) > 1

    def test_small_pool_is_shown_whole(self):
        pool = _shipped_pool()[:2]

        assert len(rotate_offers(pool, date(2026, 1, 15), 4)) == 2

    def test_shipped_pool_has_eight_offers(self):
        assert len(_shipped_pool()) == 8

    def test_bad_offer_config_rejected(self):
        with pytest.raises(ConfigValidationError):
            ShopOffer.from_mapping({"id": 1, "name": "No price", "rarity": 2})


@pytest.mark.unit
@pytest.mark.asyncio
class TestPurchase:
    async def test_shop_closed_below_unlock_level(self, make_shop, state_factory):
        service, store = await make_shop(state_factory(level=9, coins=10_000))
        offer = service.daily_offers()[0]

        with pytest.raises(ShopLockedError) as exc_info:
            await service.purchase_offer(offer.id)

        assert exc_info.value.unlock_level == 10
        assert service.is_open() is False
        assert store.snapshot.coins == 10_000

    async def test_purchase_unlocks_with_fixed_rarity(self, make_shop, state_factory, clock):
        # Arrange
        service, store = await make_shop(state_factory(level=10, coins=1000))
        offer = service.daily_offers()[0]

        # Act
        character = await service.purchase_offer(offer.id)

        # Assert
        assert character.id == offer.id
        assert character.rarity == offer.rarity
        assert character.character_level == 1
        assert character.unlock_date == clock.now()
        assert store.snapshot.coins == 1000 - offer.coin_price
        assert store.snapshot.owns(offer.id)
        assert store.snapshot.find_character(offer.id) == character

    async def test_offer_outside_rotation_not_found(self, make_shop, state_factory):
        service, _ = await make_shop(state_factory(level=10, coins=1000))
        todays = {o.id for o in service.daily_offers()}
        elsewhere = next(o.id for o in _shipped_pool() if o.id not in todays)

        with pytest.raises(NotFoundError):
            await service.purchase_offer(elsewhere)

    async def test_already_owned_rejected(
        self, make_shop, state_factory, character_factory, clock
    ):
        pool = _shipped_pool()
        offer = rotate_offers(pool, clock.now().date(), 4)[0]
        service, store = await make_shop(
            state_factory(level=10, coins=1000, unlocked_characters=(character_factory(offer.id),))
        )

        with pytest.raises(InvalidOperationError):
            await service.purchase_offer(offer.id)

        assert store.snapshot.coins == 1000

    async def test_offer_level_requirement(self, make_shop, state_factory):
        ConfigManager.set_override("economy.shop.unlock_level", 1)
        ConfigManager.set_override(
            "economy.shop.offers",
            [{"id": 500, "name": "Gated", "coin_price": 10, "required_level": 5, "rarity": 2}],
        )
        service, _ = await make_shop(state_factory(level=4, coins=100))

        with pytest.raises(LevelRequirementError) as exc_info:
            await service.purchase_offer(500)

        assert exc_info.value.required_level == 5

    async def test_insufficient_funds(self, make_shop, state_factory):
        service, store = await make_shop(state_factory(level=10, coins=10))
        offer = service.daily_offers()[0]

        with pytest.raises(InsufficientFundsError) as exc_info:
            await service.purchase_offer(offer.id)

        assert exc_info.value.required == offer.coin_price
        assert store.snapshot.unlocked_characters == ()

    async def test_purchase_is_published(self, make_shop, state_factory, event_bus):
        purchases = []
        event_bus.subscribe("shop.offer_purchased", lambda payload: purchases.append(payload))
        service, _ = await make_shop(state_factory(level=10, coins=1000))
        offer = service.daily_offers()[0]

        await service.purchase_offer(offer.id)

        assert purchases == [
            {"offer_id": offer.id, "price": offer.coin_price, "coins": 1000 - offer.coin_price}
        ]

    async def test_unconfigured_pool_leaves_shop_empty(
        self, make_shop, state_factory, caplog
    ):
        ConfigManager.set_override("economy.shop.offers", None)
        service, _ = await make_shop(state_factory(level=10, coins=1000))

        with caplog.at_level("WARNING", logger="tests.services"):
            offers = service.daily_offers()

        assert offers == []
        assert "No shop offers configured" in caplog.text
        with pytest.raises(NotFoundError):
            await service.purchase_offer(101)
