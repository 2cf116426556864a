"""
database.py — Room storage
===========================
Key-value storage of room state by room code.

    InMemoryRoomStore   process-local dict, used for development and tests
    RedisRoomStore      redis.asyncio, one JSON string per room
    FallbackRoomStore   Redis first; switches to memory once Redis is unreachable

Stored bytes are never trusted for the activity catalog: every load goes
through `catalog.hydrate_state`.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone

from redis.asyncio import Redis
from redis.exceptions import RedisError

from sitesim.core.config import Settings
from sitesim.engine.catalog import hydrate_state
from sitesim.engine.models import GameState

logger = logging.getLogger(__name__)


def dump_state(state: GameState) -> str:
    return state.model_dump_json(by_alias=True)


def load_state(raw: str) -> GameState:
    return hydrate_state(json.loads(raw))


class RoomStore:
    """Storage contract shared by every backend."""

    async def load(self, room_code: str) -> GameState | None:
        raise NotImplementedError

    async def save(self, state: GameState) -> None:
        raise NotImplementedError

    async def delete(self, room_code: str) -> bool:
        raise NotImplementedError

    async def exists(self, room_code: str) -> bool:
        return await self.load(room_code) is not None

    async def close(self) -> None:
        return None


class InMemoryRoomStore(RoomStore):
    """Thread-safe in-memory store. Keeps serialized JSON so loads never alias live objects."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: dict[str, dict] = {}

    async def load(self, room_code: str) -> GameState | None:
        with self._lock:
            record = self._rooms.get(room_code)
        if record is None:
            return None
        return load_state(record["data"])

    async def save(self, state: GameState) -> None:
        data = dump_state(state)
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            created = self._rooms.get(state.room_code, {}).get("_created_at", now)
            self._rooms[state.room_code] = {
                "data": data,
                "_created_at": created,
                "_updated_at": now,
            }

    async def delete(self, room_code: str) -> bool:
        with self._lock:
            return self._rooms.pop(room_code, None) is not None

    async def exists(self, room_code: str) -> bool:
        with self._lock:
            return room_code in self._rooms

    def count(self) -> int:
        with self._lock:
            return len(self._rooms)


class RedisRoomStore(RoomStore):
    def __init__(self, redis: Redis, key_prefix: str = "room:"):
        self.redis = redis
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "room:") -> "RedisRoomStore":
        return cls(Redis.from_url(url, decode_responses=True, health_check_interval=30), key_prefix)

    def _key(self, room_code: str) -> str:
        return f"{self.key_prefix}{room_code}"

    async def load(self, room_code: str) -> GameState | None:
        raw = await self.redis.get(self._key(room_code))
        if raw is None:
            return None
        return load_state(raw)

    async def save(self, state: GameState) -> None:
        await self.redis.set(self._key(state.room_code), dump_state(state))

    async def delete(self, room_code: str) -> bool:
        return bool(await self.redis.delete(self._key(room_code)))

    async def exists(self, room_code: str) -> bool:
        return bool(await self.redis.exists(self._key(room_code)))

    async def close(self) -> None:
        await self.redis.aclose()


class FallbackRoomStore(RoomStore):
    """
    Use `primary` until it fails with a connection-level error, then keep
    serving every room from `fallback` for the rest of the process.
    """

    def __init__(self, primary: RoomStore, fallback: RoomStore | None = None):
        self.primary = primary
        self.fallback = fallback or InMemoryRoomStore()
        self.degraded = False

    def _degrade(self, op: str, exc: Exception) -> None:
        if not self.degraded:
            logger.warning(f"⚠️  Room store unreachable during {op} ({exc}); using in-memory fallback")
        self.degraded = True

    async def _call(self, op: str, *args):
        if not self.degraded:
            try:
                return await getattr(self.primary, op)(*args)
            except (RedisError, OSError) as e:
                self._degrade(op, e)
        return await getattr(self.fallback, op)(*args)

    async def load(self, room_code: str) -> GameState | None:
        return await self._call("load", room_code)

    async def save(self, state: GameState) -> None:
        await self._call("save", state)

    async def delete(self, room_code: str) -> bool:
        return await self._call("delete", room_code)

    async def exists(self, room_code: str) -> bool:
        return await self._call("exists", room_code)

    async def close(self) -> None:
        try:
            await self.primary.close()
        except (RedisError, OSError) as e:
            logger.warning(f"Room store close failed: {e}")


def build_store(settings: Settings) -> RoomStore:
    if settings.USE_IN_MEMORY_DB:
        return InMemoryRoomStore()
    return FallbackRoomStore(RedisRoomStore.from_url(settings.REDIS_URL, settings.ROOM_KEY_PREFIX))
