from portal_economy.modules.state.codec import from_record, to_record
from portal_economy.modules.state.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    RedisPersistence,
    StatePersistence,
)
from portal_economy.modules.state.store import StateChange, StateStore

__all__ = [
    "InMemoryPersistence",
    "JsonFilePersistence",
    "RedisPersistence",
    "StateChange",
    "StatePersistence",
    "StateStore",
    "from_record",
    "to_record",
]
