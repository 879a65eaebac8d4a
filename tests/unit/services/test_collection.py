"""
Unit Tests for CollectionService
================================

Test Coverage
-------------
- Unlock: new characters, idempotent re-unlock, random rarity
- Upgrade: cost, insufficient funds, unknown ids
- Fusion: derived stats, selection hand-over, id uniqueness, rejections
- Sell: value, protection of the income source
- Income source selection (including dangling ids)

Testing Strategy
----------------
- Store over in-memory persistence, seeded RNG
- Failed operations are checked to leave the snapshot untouched
"""

import pytest

from portal_economy.core.config.manager import ConfigManager
from portal_economy.domain.models import CatalogCharacter
from portal_economy.modules.collection.service import CollectionService, fusion_id
from portal_economy.modules.shared.exceptions import (
    InsufficientFundsError,
    InvalidOperationError,
    NotFoundError,
    ProtectedAssetError,
    ValidationError,
)

RICK = CatalogCharacter(id=1, name="Rick Sanchez", image="https://img.test/1.png")


@pytest.fixture
def make_collection(make_store, clock, event_bus, rng, service_logger):
    async def factory(state=None):
        store = await make_store(state)
        service = CollectionService(store, clock, ConfigManager, event_bus, service_logger, rng=rng)
        return service, store

    return factory


@pytest.fixture
def published(event_bus):
    events = []

    async def record(payload):
        events.append(payload)

    event_bus.subscribe("character.*", record)
    return events


# ============================================================================
# UNLOCK
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestUnlock:
    async def test_unlock_adds_level_one_character(self, make_collection, clock, published):
        # Arrange
        service, store = await make_collection()

        # Act
        state = await service.unlock_character(RICK)

        # Assert
        character = state.find_character(1)
        assert character.name == "Rick Sanchez"
        assert character.character_level == 1
        assert character.base_speed == 1.0
        assert 1 <= character.rarity <= 5
        assert character.unlock_date == clock.now()
        assert published == [
            {"character_id": 1, "name": "Rick Sanchez", "rarity": character.rarity}
        ]

    async def test_unlock_of_owned_character_is_noop(
        self, make_collection, state_factory, character_factory, published
    ):
        owned = character_factory(1, rarity=5, level=4)
        service, store = await make_collection(state_factory(unlocked_characters=(owned,)))
        before = store.snapshot

        state = await service.unlock_character(RICK)

        assert state is before
        assert state.find_character(1) == owned
        assert published == []

    async def test_rarity_covers_full_range(self, make_collection):
        service, store = await make_collection()

        for character_id in range(1, 61):
            await service.unlock_character(
                CatalogCharacter(id=character_id, name=f"C{character_id}", image="")
            )

        rarities = {c.rarity for c in store.snapshot.unlocked_characters}
        assert rarities == {1, 2, 3, 4, 5}

    async def test_invalid_id_type_rejected(self, make_collection):
        service, _ = await make_collection()

        with pytest.raises(ValidationError):
            await service.unlock_character(CatalogCharacter(id=1.5, name="x", image=""))


# ============================================================================
# UPGRADE
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestUpgrade:
    async def test_upgrade_charges_level_times_cost(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(coins=250, unlocked_characters=(character_factory(1, level=2),))
        service, store = await make_collection(state)

        upgraded = await service.upgrade_character(1)

        assert upgraded.character_level == 3
        assert store.snapshot.coins == 50

    async def test_upgrade_without_funds_changes_nothing(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(coins=150, unlocked_characters=(character_factory(1, level=2),))
        service, store = await make_collection(state)
        before = store.snapshot

        with pytest.raises(InsufficientFundsError) as exc_info:
            await service.upgrade_character(1)

        assert exc_info.value.required == 200
        assert store.snapshot is before

    async def test_upgrade_unknown_character(self, make_collection):
        service, _ = await make_collection()

        with pytest.raises(NotFoundError):
            await service.upgrade_character(404)

    async def test_upgrade_cost_is_configurable(
        self, make_collection, state_factory, character_factory
    ):
        ConfigManager.set_override("economy.collection.upgrade_cost_per_level", 10)
        state = state_factory(coins=20, unlocked_characters=(character_factory(1, level=2),))
        service, store = await make_collection(state)

        await service.upgrade_character(1)

        assert store.snapshot.coins == 0


# ============================================================================
# FUSION
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestFusion:
    async def test_fusion_replaces_parents_with_child(
        self, make_collection, state_factory, character_factory, clock
    ):
        # Arrange
        first = character_factory(1, name="Rick", rarity=2, level=2, base_speed=1.0)
        second = character_factory(2, name="Morty", rarity=3, level=4, base_speed=2.0)
        bystander = character_factory(3)
        service, store = await make_collection(
            state_factory(unlocked_characters=(first, second, bystander))
        )

        # Act
        child = await service.fuse_characters(1, 2)

        # Assert
        assert child.character_level == 5
        assert child.base_speed == pytest.approx(2.0)
        assert child.rarity == 4
        assert child.is_fusion is True
        assert child.parents == (1, 2)
        assert child.name == "Fusion: Rick & Morty"
        assert child.image == first.image
        assert child.id == f"fusion-{int(clock.now().timestamp() * 1000)}"
        assert [c.id for c in store.snapshot.unlocked_characters] == [3, child.id]
        assert store.snapshot.find_character(child.id) == child

    async def test_selection_moves_to_child(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(
            unlocked_characters=(character_factory(1), character_factory(2)),
            selected_income_source=2,
        )
        service, store = await make_collection(state)

        child = await service.fuse_characters(1, 2)

        assert store.snapshot.selected_income_source == child.id
        assert store.snapshot.selected_character == child

    async def test_unrelated_selection_is_kept(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(
            unlocked_characters=(character_factory(1), character_factory(2), character_factory(3)),
            selected_income_source=3,
        )
        service, store = await make_collection(state)

        await service.fuse_characters(1, 2)

        assert store.snapshot.selected_income_source == 3

    async def test_fusing_with_itself_rejected(
        self, make_collection, state_factory, character_factory
    ):
        service, store = await make_collection(
            state_factory(unlocked_characters=(character_factory(1),))
        )
        before = store.snapshot

        with pytest.raises(InvalidOperationError):
            await service.fuse_characters(1, 1)

        assert store.snapshot is before

    async def test_fusing_unknown_character_rejected(
        self, make_collection, state_factory, character_factory
    ):
        service, store = await make_collection(
            state_factory(unlocked_characters=(character_factory(1),))
        )

        with pytest.raises(NotFoundError) as exc_info:
            await service.fuse_characters(1, 99)

        assert exc_info.value.identifier == 99
        assert store.snapshot.owns(1)

    async def test_two_fusions_in_same_millisecond_get_distinct_ids(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(
            unlocked_characters=tuple(character_factory(i) for i in range(1, 5))
        )
        service, store = await make_collection(state)

        first_child = await service.fuse_characters(1, 2)
        second_child = await service.fuse_characters(3, 4)

        assert first_child.id != second_child.id
        assert len(store.snapshot.unlocked_characters) == 2

    def test_fusion_id_skips_taken_ids(self, state_factory, character_factory, clock):
        millis = int(clock.now().timestamp() * 1000)
        state = state_factory(unlocked_characters=(character_factory(f"fusion-{millis}"),))

        assert fusion_id(state, clock.now()) == f"fusion-{millis + 1}"


# ============================================================================
# SELL & SELECT
# ============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestSellAndSelect:
    async def test_sell_pays_level_and_rarity_value(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(coins=10, unlocked_characters=(character_factory(1, rarity=4, level=3),))
        service, store = await make_collection(state)

        value = await service.sell_character(1)

        assert value == 550
        assert store.snapshot.coins == 560
        assert not store.snapshot.owns(1)

    async def test_sell_then_unlock_again_credits_only_the_sell_value(
        self, make_collection, state_factory, character_factory
    ):
        # Arrange
        state = state_factory(coins=10, unlocked_characters=(character_factory(1, rarity=4, level=3),))
        service, store = await make_collection(state)

        # Act
        value = await service.sell_character(1)
        await service.unlock_character(RICK)

        # Assert
        assert value == 3 * 50 + 4 * 100
        assert store.snapshot.coins == 10 + value
        assert store.snapshot.find_character(1).character_level == 1

    async def test_selected_income_source_cannot_be_sold(
        self, make_collection, state_factory, character_factory
    ):
        state = state_factory(
            unlocked_characters=(character_factory(1),),
            selected_income_source=1,
        )
        service, store = await make_collection(state)
        before = store.snapshot

        with pytest.raises(ProtectedAssetError):
            await service.sell_character(1)

        assert store.snapshot is before

    async def test_sell_unknown_character(self, make_collection):
        service, _ = await make_collection()

        with pytest.raises(NotFoundError):
            await service.sell_character("missing")

    async def test_select_owned_character(
        self, make_collection, state_factory, character_factory, event_bus
    ):
        selected = []
        event_bus.subscribe("income.source_selected", lambda payload: selected.append(payload))
        service, _ = await make_collection(
            state_factory(unlocked_characters=(character_factory(1),))
        )

        state = await service.select_income_source(1)

        assert state.selected_income_source == 1
        assert selected == [{"character_id": 1}]

    async def test_dangling_selection_is_accepted(self, make_collection):
        service, _ = await make_collection()

        state = await service.select_income_source(12345)

        assert state.selected_income_source == 12345
        assert state.selected_character is None
