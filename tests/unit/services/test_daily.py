"""
Unit tests for DailyService (daily bonus and login streak).
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from portal_economy.core.config.manager import ConfigManager
from portal_economy.modules.daily.service import DailyService
from portal_economy.modules.shared.exceptions import AlreadyClaimedTodayError


@pytest.fixture
def make_daily(make_store, clock, event_bus, service_logger):
    async def factory(state=None):
        store = await make_store(state)
        return DailyService(store, clock, ConfigManager, event_bus, service_logger), store

    return factory


@pytest.mark.unit
@pytest.mark.asyncio
class TestDailyBonus:
    async def test_first_claim_starts_streak(self, make_daily, clock):
        # Arrange
        service, store = await make_daily()

        # Act
        bonus = await service.claim_daily_bonus()

        # Assert
        assert bonus == 16
        assert store.snapshot.daily_bonus_streak == 1
        assert store.snapshot.last_daily_bonus == clock.now().date()

    async def test_second_claim_same_day_rejected(self, make_daily, clock):
        service, store = await make_daily()
        await service.claim_daily_bonus()
        clock.advance(hours=11)

        with pytest.raises(AlreadyClaimedTodayError):
            await service.claim_daily_bonus()

        assert store.snapshot.coins == 16
        assert service.can_claim() is False

    async def test_consecutive_days_build_streak(self, make_daily, clock):
        service, store = await make_daily()
        bonuses = []

        for _ in range(3):
            bonuses.append(await service.claim_daily_bonus())
            clock.advance(days=1)

        assert bonuses == [16, 33, 50]
        assert store.snapshot.daily_bonus_streak == 3

    async def test_streak_of_nine_hits_cap(self, make_daily, state_factory, clock):
        yesterday = clock.now().date() - timedelta(days=1)
        service, _ = await make_daily(
            state_factory(last_daily_bonus=yesterday, daily_bonus_streak=8)
        )

        assert await service.claim_daily_bonus() == 150

    async def test_bonus_stays_capped_beyond_nine(self, make_daily, state_factory, clock):
        yesterday = clock.now().date() - timedelta(days=1)
        service, _ = await make_daily(
            state_factory(last_daily_bonus=yesterday, daily_bonus_streak=40)
        )

        assert await service.claim_daily_bonus() == 150

    async def test_gap_resets_streak(self, make_daily, state_factory, clock):
        two_days_ago = clock.now().date() - timedelta(days=2)
        service, store = await make_daily(
            state_factory(last_daily_bonus=two_days_ago, daily_bonus_streak=6)
        )

        bonus = await service.claim_daily_bonus()

        assert bonus == 16
        assert store.snapshot.daily_bonus_streak == 1

    async def test_day_boundary_is_utc_midnight(self, make_daily, clock):
        clock.set(datetime(2026, 1, 15, 23, 59, tzinfo=timezone.utc))
        service, _ = await make_daily()
        await service.claim_daily_bonus()

        clock.advance(minutes=2)

        assert service.today() == date(2026, 1, 16)
        assert service.can_claim() is True
        assert await service.claim_daily_bonus() == 33

    async def test_claim_is_published(self, make_daily, event_bus):
        claims = []
        event_bus.subscribe("daily.bonus_claimed", lambda payload: claims.append(payload))
        service, _ = await make_daily()

        await service.claim_daily_bonus()

        assert claims == [{"bonus": 16, "streak": 1, "claimed_on": "2026-01-15"}]

    async def test_base_bonus_is_configurable(self, make_daily):
        ConfigManager.set_override("economy.daily.base_bonus", 100)
        service, _ = await make_daily()

        assert await service.claim_daily_bonus() == 33
