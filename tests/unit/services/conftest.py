"""
Fixtures shared by the service tests.
"""

import logging

import pytest

from portal_economy.modules.state.codec import to_record
from portal_economy.modules.state.persistence import InMemoryPersistence
from portal_economy.modules.state.store import StateStore


@pytest.fixture
def service_logger() -> logging.Logger:
    return logging.getLogger("tests.services")


@pytest.fixture
def make_store(clock, event_bus):
    """Loaded StateStore whose persistence already holds ``state``."""

    async def factory(state=None) -> StateStore:
        persistence = InMemoryPersistence(to_record(state) if state is not None else None)
        store = StateStore(persistence, clock, event_bus)
        await store.load()
        return store

    return factory
