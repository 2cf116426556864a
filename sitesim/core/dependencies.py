from fastapi import Request, WebSocket

from sitesim.apps.room.service import RoomService
from sitesim.apps.ws.service import ConnectionManager


def get_room_service(request: Request) -> RoomService:
    """The RoomService built in create_app(), injected with Depends()."""
    return request.app.state.room_service


def get_ws_room_service(websocket: WebSocket) -> RoomService:
    return websocket.app.state.room_service


def get_connection_manager(websocket: WebSocket) -> ConnectionManager:
    return websocket.app.state.connections
