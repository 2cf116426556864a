"""
service.py — Room Service
==========================
Entry points used by both the REST router and the WebSocket router.

Every mutating call runs load → engine → save → broadcast while holding the
room's asyncio.Lock, so actions on one room never interleave. Rooms share
nothing; each code has its own lock.

The service is built once in create_app() and injected; there is no
module-level room dict.
"""

from __future__ import annotations

import asyncio
import logging
import random
import string
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator

from sitesim.apps.ws.service import ConnectionManager
from sitesim.core.database import RoomStore
from sitesim.engine import scoring, turns
from sitesim.engine.errors import RoomNotFound
from sitesim.engine.models import DeckType, GameState, PlayerScore, RoomStatus

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = "".join(c for c in string.ascii_uppercase + string.digits if c not in "IO01")
ROOM_CODE_LENGTH = 5


def _now() -> datetime:
    return datetime.now(timezone.utc)


def state_payload(state: GameState) -> dict:
    return state.model_dump(mode="json", by_alias=True)


class RoomService:
    def __init__(
        self,
        store: RoomStore,
        connections: ConnectionManager | None = None,
        rng: random.Random | None = None,
        idle_ttl: timedelta = timedelta(hours=2),
    ):
        self.store = store
        self.connections = connections or ConnectionManager()
        self.rng = rng or random.Random()
        self.idle_ttl = idle_ttl
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_seen: dict[str, datetime] = {}
        self._create_lock = asyncio.Lock()

    # ═══════════════════════════════════════════════════
    # REGISTRY
    # ═══════════════════════════════════════════════════

    def _lock_for(self, room_code: str) -> asyncio.Lock:
        if room_code not in self._locks:
            self._locks[room_code] = asyncio.Lock()
        return self._locks[room_code]

    def _touch(self, room_code: str) -> None:
        self._last_seen[room_code] = _now()

    def _forget(self, room_code: str) -> None:
        self._locks.pop(room_code, None)
        self._last_seen.pop(room_code, None)
        self.connections.drop_room(room_code)

    async def _generate_room_code(self) -> str:
        while True:
            code = "".join(self.rng.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))
            if not await self.store.exists(code):
                return code

    async def _load(self, room_code: str) -> GameState:
        state = await self.store.load(room_code)
        if state is None:
            raise RoomNotFound(room_code)
        return state

    async def _commit(self, state: GameState) -> GameState:
        await self.store.save(state)
        self._touch(state.room_code)
        await self.connections.broadcast(
            state.room_code,
            {"event": "state_update", "data": state_payload(state)},
        )
        return state

    @asynccontextmanager
    async def _room(self, room_code: str) -> AsyncIterator[GameState]:
        """Serialized load → mutate → save for one room."""
        lock = self._lock_for(room_code)
        try:
            async with lock:
                state = await self._load(room_code)
                yield state
                await self._commit(state)
        except RoomNotFound:
            # unknown codes must not leave a lock behind
            if not lock.locked() and room_code not in self._last_seen:
                self._locks.pop(room_code, None)
            raise

    # ═══════════════════════════════════════════════════
    # ENTRY POINTS
    # ═══════════════════════════════════════════════════

    async def create_room(self, nickname: str) -> tuple[GameState, str]:
        """
        New LOBBY room with `nickname` as host.

        Returns:
            (state, host player id)
        """
        player_id = str(uuid.uuid4())
        async with self._create_lock:
            room_code = await self._generate_room_code()
            state = turns.new_game_state(room_code, player_id, nickname, rng=self.rng)
            await self.store.save(state)
        self._touch(room_code)
        logger.info(f"🎮 Room created: {room_code} by {nickname}")
        return state, player_id

    async def join_room(self, room_code: str, nickname: str) -> tuple[GameState, str]:
        player_id = str(uuid.uuid4())
        async with self._room(room_code) as state:
            turns.add_player(state, player_id, nickname)
        logger.info(f"👤 {nickname} joined room {room_code}")
        return state, player_id

    async def start_game(self, room_code: str, player_id: str) -> GameState:
        async with self._room(room_code) as state:
            turns.start_game(state, player_id)
        logger.info(f"🚀 Room {room_code} started with {len(state.players)} players")
        return state

    async def roll(
        self,
        room_code: str,
        player_id: str,
        chosen_deck_if_five: DeckType | None = None,
    ) -> GameState:
        async with self._room(room_code) as state:
            turns.roll_and_offer(state, player_id, chosen_deck_if_five, rng=self.rng)
        return state

    async def apply(
        self,
        room_code: str,
        player_id: str,
        coins_spent: int = 0,
        chosen_card_id: str | None = None,
        chosen_deck_if_five: DeckType | None = None,
    ) -> GameState:
        async with self._room(room_code) as state:
            turns.apply_turn(
                state,
                player_id,
                coins_spent=coins_spent,
                chosen_card_id=chosen_card_id,
                chosen_deck_if_five=chosen_deck_if_five,
                rng=self.rng,
            )
        if state.status == RoomStatus.FINISHED:
            logger.info(f"🏁 Room {room_code} finished after {state.round} rounds")
        return state

    async def get_state(self, room_code: str) -> GameState:
        return await self._load(room_code)

    async def scores(self, room_code: str) -> list[PlayerScore]:
        state = await self._load(room_code)
        return scoring.calculate_scores(state)

    async def delete_room(self, room_code: str) -> bool:
        async with self._lock_for(room_code):
            deleted = await self.store.delete(room_code)
        self._forget(room_code)
        if deleted:
            logger.info(f"🗑️  Room deleted: {room_code}")
        return deleted

    # ═══════════════════════════════════════════════════
    # EVICTION
    # ═══════════════════════════════════════════════════

    async def evict_idle(self, now: datetime | None = None) -> list[str]:
        """Delete rooms nobody touched for `idle_ttl`. Rooms mid-action are skipped."""
        now = now or _now()
        expired = [
            code for code, seen in self._last_seen.items()
            if now - seen > self.idle_ttl and not self._lock_for(code).locked()
        ]
        for code in expired:
            await self.store.delete(code)
            self._forget(code)
        if expired:
            logger.info(f"🧹 Evicted {len(expired)} idle room(s): {', '.join(expired)}")
        return expired

    async def run_sweeper(self, interval_seconds: int) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.evict_idle()
