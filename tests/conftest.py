"""
Pytest Configuration and Fixtures for Portal Economy Tests
==========================================================

Purpose
-------
Shared fixtures for the test suite: a manually driven clock, in-memory
persistence, a fresh event bus, a seeded RNG, and a factory for started
engines.

Architecture Notes
------------------
- Unit tests use in-memory persistence and the manual clock (fast, isolated)
- Integration tests use testcontainers (real Redis) and skip without Docker
- ConfigManager is reset around every test so overrides never leak
"""

from __future__ import annotations

import os
import random
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

import pytest
import pytest_asyncio

from portal_economy.core.config.manager import ConfigManager
from portal_economy.core.event.bus import EventBus
from portal_economy.domain.models import Character, PlayerState
from portal_economy.engine import EconomyEngine
from portal_economy.modules.state.codec import to_record
from portal_economy.modules.state.persistence import InMemoryPersistence
from portal_economy.modules.state.store import StateStore

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class ManualClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> datetime:
        self._now += timedelta(**delta)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


def make_character(
    character_id: Any = 1,
    *,
    name: Optional[str] = None,
    rarity: int = 1,
    level: int = 1,
    base_speed: float = 1.0,
    unlock_date: datetime = START,
) -> Character:
    """Build an owned character with explicit stats."""
    return Character(
        id=character_id,
        name=name or f"Character {character_id}",
        image=f"https://img.test/{character_id}.png",
        rarity=rarity,
        unlock_date=unlock_date,
        character_level=level,
        base_speed=base_speed,
    )


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Drop overrides and cached YAML around every test."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def mock_event_bus(mocker):
    """EventBus stand-in that records publishes."""
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock(return_value="listener-id")
    return mock_bus


@pytest_asyncio.fixture
async def store(persistence, clock, event_bus) -> StateStore:
    """Loaded store starting from default state."""
    state_store = StateStore(persistence, clock, event_bus)
    await state_store.load()
    return state_store


# ============================================================================
# ENGINE FACTORY
# ============================================================================

EngineFactory = Callable[..., Awaitable[EconomyEngine]]


@pytest_asyncio.fixture
async def make_engine(
    persistence, clock, event_bus, rng
) -> AsyncGenerator[EngineFactory, None]:
    """
    Start engines against the shared persistence/clock.

    Usage:
        engine = await make_engine(state=PlayerState(last_online=START, coins=500))
    """
    engines: list[EconomyEngine] = []

    async def factory(state: Optional[PlayerState] = None, **kwargs: Any) -> EconomyEngine:
        if state is not None:
            await persistence.save(to_record(state))
        engine = EconomyEngine(
            kwargs.pop("persistence", persistence),
            clock=kwargs.pop("clock", clock),
            event_bus=kwargs.pop("event_bus", event_bus),
            rng=kwargs.pop("rng", rng),
            **kwargs,
        )
        await engine.start()
        engines.append(engine)
        return engine

    yield factory

    for engine in engines:
        await engine.shutdown()


@pytest_asyncio.fixture
async def engine(make_engine) -> EconomyEngine:
    """Started engine with a fresh default state."""
    return await make_engine()


@pytest.fixture
def character_factory() -> Callable[..., Character]:
    return make_character


@pytest.fixture
def state_factory(clock) -> Callable[..., PlayerState]:
    """PlayerState stamped at the clock's current time."""

    def factory(**fields: Any) -> PlayerState:
        fields.setdefault("last_online", clock.now())
        return PlayerState(**fields)

    return factory
