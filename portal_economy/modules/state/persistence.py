"""
Persistence adapters for player snapshots.

Purpose
-------
Implement the storage port the StateStore depends on:

    async load() -> Optional[Record]
    async save(record: Record) -> None

Adapters move whole JSON records; they know nothing about ``PlayerState``.
Decoding (and deciding what counts as corrupt) is the codec's job.

Adapters
--------
- ``InMemoryPersistence``: process-local, used by tests and ``memory`` backend
- ``JsonFilePersistence``: one JSON file, written atomically (temp + replace)
- ``RedisPersistence``: one key per profile on an async redis client

Error Contract
--------------
- I/O failures raise ``PersistenceError`` (retryable)
- Unparsable stored bytes raise ``StateCorruptionError``
- A missing snapshot is not an error; ``load`` returns ``None``
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from portal_economy.core.exceptions import PersistenceError, StateCorruptionError
from portal_economy.core.logging.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]


class StatePersistence(Protocol):
    """Storage port for one player's snapshot."""

    name: str

    async def load(self) -> Optional[Record]:
        ...

    async def save(self, record: Record) -> None:
        ...

    async def close(self) -> None:
        ...


def _parse(raw: str | bytes, source: str) -> Record:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StateCorruptionError(f"{source} is not valid UTF-8: {exc.reason}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StateCorruptionError(f"invalid JSON in {source}: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise StateCorruptionError(f"{source} does not hold a JSON object")
    return data


# =============================================================================
# In-memory
# =============================================================================


class InMemoryPersistence:
    """
    Keeps the last saved record in memory.

    ``fail_saves`` / ``fail_loads`` make the adapter raise PersistenceError,
    for exercising the store's failure paths.
    """

    name = "memory"

    def __init__(self, initial: Optional[Record] = None) -> None:
        self._record: Optional[Record] = copy.deepcopy(initial)
        self.save_count = 0
        self.fail_saves = False
        self.fail_loads = False

    @property
    def record(self) -> Optional[Record]:
        return copy.deepcopy(self._record)

    async def load(self) -> Optional[Record]:
        if self.fail_loads:
            raise PersistenceError("load", self.name, "simulated read failure")
        return copy.deepcopy(self._record)

    async def save(self, record: Record) -> None:
        if self.fail_saves:
            raise PersistenceError("save", self.name, "simulated write failure")
        self._record = copy.deepcopy(record)
        self.save_count += 1

    async def close(self) -> None:
        return None


# =============================================================================
# JSON file
# =============================================================================


class JsonFilePersistence:
    """
    Snapshot stored as a JSON file.

    Writes go to a temp file in the same directory followed by
    ``os.replace``, so a crash mid-write never leaves a truncated snapshot.
    Blocking file I/O runs in a worker thread.
    """

    name = "file"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> Optional[bytes]:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), suffix=".tmp", prefix=f"{self.path.stem}_"
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    async def load(self) -> Optional[Record]:
        try:
            raw = await asyncio.to_thread(self._read)
        except OSError as exc:
            raise PersistenceError("load", self.name, str(exc)) from exc
        if raw is None:
            return None
        return _parse(raw, str(self.path))

    async def save(self, record: Record) -> None:
        payload = json.dumps(record, ensure_ascii=False, indent=2)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as exc:
            raise PersistenceError("save", self.name, str(exc)) from exc
        logger.debug("Snapshot written", extra={"path": str(self.path), "bytes": len(payload)})

    async def close(self) -> None:
        return None


# =============================================================================
# Redis
# =============================================================================


class RedisPersistence:
    """
    Snapshot stored as a JSON string under ``<prefix>:<profile_id>``.

    The adapter owns the client only when it created it from a URL;
    an injected client is left open on ``close()``.
    """

    name = "redis"

    def __init__(
        self,
        client: AsyncRedis,
        profile_id: str,
        *,
        key_prefix: str = "portal_economy:state",
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self.key = f"{key_prefix}:{profile_id}"
        self._owns_client = owns_client

    @classmethod
    def from_url(
        cls,
        url: str,
        profile_id: str,
        *,
        key_prefix: str = "portal_economy:state",
        socket_timeout: float = 5.0,
    ) -> RedisPersistence:
        client = AsyncRedis.from_url(
            url,
            socket_timeout=socket_timeout,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client, profile_id, key_prefix=key_prefix, owns_client=True)

    async def load(self) -> Optional[Record]:
        try:
            raw = await self._client.get(self.key)
        except RedisError as exc:
            raise PersistenceError("load", self.name, str(exc)) from exc
        except UnicodeDecodeError as exc:
            raise StateCorruptionError(f"redis key {self.key} is not valid UTF-8: {exc.reason}") from exc
        if raw is None:
            return None
        return _parse(raw, f"redis key {self.key}")

    async def save(self, record: Record) -> None:
        try:
            await self._client.set(self.key, json.dumps(record, ensure_ascii=False))
        except RedisError as exc:
            raise PersistenceError("save", self.name, str(exc)) from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
