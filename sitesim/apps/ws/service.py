"""
service.py — WebSocket Connection Manager
==========================================
Keeps the open sockets of every room and fans messages out to them.

STRUCTURE:
----------
    {
        "ROOM1": {"player-uuid-a": WebSocket, "player-uuid-b": WebSocket},
        "ROOM2": {...},
    }

USAGE:
------
    await manager.connect("ABCDE", player_id, websocket)
    await manager.broadcast("ABCDE", {"event": "state_update", "data": {...}})
    manager.disconnect("ABCDE", player_id)
"""

import logging
from typing import Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        # room_code → {player_id → WebSocket}
        self.active_connections: Dict[str, Dict[str, WebSocket]] = {}
        logger.info("ConnectionManager initialized")

    async def connect(self, room_code: str, player_id: str, websocket: WebSocket):
        """
        Accept the socket and register it under the room.

        The other players of the room are told who connected.
        """
        await websocket.accept()

        if room_code not in self.active_connections:
            self.active_connections[room_code] = {}
        self.active_connections[room_code][player_id] = websocket

        logger.info(f"✅ Player {player_id} connected to room {room_code}")

        await self.broadcast(
            room_code,
            {
                "event": "player_connected",
                "data": {
                    "player_id": player_id,
                    "active_players": self.get_active_players(room_code),
                },
            },
            exclude=[player_id],
        )

    def disconnect(self, room_code: str, player_id: str):
        if room_code in self.active_connections:
            if player_id in self.active_connections[room_code]:
                del self.active_connections[room_code][player_id]
                logger.info(f"❌ Player {player_id} disconnected from room {room_code}")

            if not self.active_connections[room_code]:
                del self.active_connections[room_code]
                logger.info(f"🗑️  Room {room_code} group deleted (no active players)")

    def drop_room(self, room_code: str):
        """Forget every socket of a room (room deleted or evicted)."""
        self.active_connections.pop(room_code, None)

    async def broadcast(
        self,
        room_code: str,
        message: dict,
        exclude: Optional[list[str]] = None,
    ):
        exclude = exclude or []

        if room_code not in self.active_connections:
            logger.debug(f"No active connections for room {room_code}")
            return

        disconnected_players = []

        for player_id, websocket in list(self.active_connections[room_code].items()):
            if player_id in exclude:
                continue

            try:
                await websocket.send_json(message)
                logger.debug(f"📢 Broadcast to {player_id}: {message['event']}")
            except Exception as e:
                logger.error(f"❌ Failed to broadcast to {player_id}: {e}")
                disconnected_players.append(player_id)

        for player_id in disconnected_players:
            self.disconnect(room_code, player_id)

    def get_active_players(self, room_code: str) -> list[str]:
        return list(self.active_connections.get(room_code, {}).keys())
