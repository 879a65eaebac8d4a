"""
Unit Tests for the economy formulas.

Pure functions only: every number here is a rule the engine applies.
"""

from datetime import date

import pytest

from portal_economy.modules.shared import formulas


@pytest.mark.unit
@pytest.mark.domain
class TestGenerationRate:
    def test_no_selection_yields_base_speed(self, state_factory):
        assert formulas.generation_rate(state_factory()) == 1.0

    def test_selected_character_adds_effective_speed(self, state_factory, character_factory):
        state = state_factory(
            unlocked_characters=(character_factory(1, rarity=2, level=3),),
            selected_income_source=1,
        )

        # 1 + (1 + 2*0.5 + 1*0.5)
        assert formulas.generation_rate(state) == 3.5

    def test_dangling_selection_contributes_nothing(self, state_factory):
        state = state_factory(selected_income_source="gone")

        assert formulas.generation_rate(state) == 1.0


@pytest.mark.unit
@pytest.mark.domain
class TestOfflineCredit:
    def test_ninety_minutes_at_rate_two(self):
        assert formulas.offline_credit(90 * 60, 2.0) == 90

    def test_under_ten_seconds_credits_nothing(self):
        assert formulas.offline_credit(9.9, 100.0) == 0

    def test_minimum_is_inclusive(self):
        # 0.5 min * 4 * 0.5
        assert formulas.offline_credit(30, 4.0, min_seconds=30) == 1

    def test_clamped_to_twenty_four_hours(self):
        day = formulas.offline_credit(24 * 3600, 1.0)
        week = formulas.offline_credit(7 * 24 * 3600, 1.0)

        assert day == 720
        assert week == day

    def test_result_is_floored(self):
        # 3 min * 1.5 * 0.5 = 2.25
        assert formulas.offline_credit(180, 1.5) == 2


@pytest.mark.unit
@pytest.mark.domain
class TestCostsAndRewards:
    def test_level_threshold(self):
        assert formulas.level_threshold(1) == 500
        assert formulas.level_threshold(4) == 2000

    def test_points_to_next_level_never_negative(self, state_factory):
        assert formulas.points_to_next_level(state_factory(reward_points=120)) == 380
        assert formulas.points_to_next_level(state_factory(reward_points=900)) == 0

    def test_upgrade_cost(self):
        assert formulas.upgrade_cost(1) == 100
        assert formulas.upgrade_cost(7) == 700

    def test_sell_value(self, character_factory):
        assert formulas.sell_value(character_factory(1, rarity=4, level=3)) == 3 * 50 + 4 * 100

    def test_level_reward(self):
        assert formulas.level_reward(5) == 1000


@pytest.mark.unit
@pytest.mark.domain
class TestFusionFormulas:
    def test_level_is_max_plus_one(self, character_factory):
        a = character_factory(1, level=2)
        b = character_factory(2, level=5)

        assert formulas.fusion_level(a, b) == 6

    def test_base_speed_divides_sum(self, character_factory):
        a = character_factory(1, base_speed=1.0)
        b = character_factory(2, base_speed=2.0)

        assert formulas.fusion_base_speed(a, b) == pytest.approx(2.0)

    @pytest.mark.parametrize(
        "r1,r2,expected",
        [(1, 1, 2), (1, 2, 2), (2, 3, 4), (3, 3, 4), (4, 4, 5), (5, 5, 5)],
    )
    def test_rarity_rounds_up_and_clamps(self, character_factory, r1, r2, expected):
        a = character_factory(1, rarity=r1)
        b = character_factory(2, rarity=r2)

        assert formulas.fusion_rarity(a, b) == expected


@pytest.mark.unit
@pytest.mark.domain
class TestDailyBonus:
    @pytest.mark.parametrize(
        "streak,expected",
        [(1, 16), (2, 33), (3, 50), (6, 100), (9, 150), (10, 150), (30, 150)],
    )
    def test_bonus_scales_with_streak_and_caps(self, streak, expected):
        assert formulas.daily_bonus(streak) == expected

    def test_streak_continues_after_yesterday(self):
        assert formulas.next_streak(date(2026, 1, 14), date(2026, 1, 15), 4) == 5

    def test_streak_resets_after_gap(self):
        assert formulas.next_streak(date(2026, 1, 12), date(2026, 1, 15), 4) == 1

    def test_first_claim_starts_at_one(self):
        assert formulas.next_streak(None, date(2026, 1, 15), 0) == 1

    def test_streak_crosses_month_boundary(self):
        assert formulas.next_streak(date(2026, 1, 31), date(2026, 2, 1), 2) == 3
