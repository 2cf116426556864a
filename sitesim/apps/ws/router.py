"""
router.py — WebSocket Router
=============================

ENDPOINT:
---------
WS /ws/{room_code}/{player_id}

FLOW:
-----
1. Client connects with the player id it got from create/join
2. Unknown room or player → socket closed with 4404
3. Loop: client events go through RoomService (same path as REST)
4. Successful actions are broadcast to the room as `state_update`
   by the service; failures are sent to this socket only
"""

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from sitesim.apps.room.service import RoomService, state_payload
from sitesim.apps.ws.schema import ApplyData, ClientEvent, RollData, error_event
from sitesim.apps.ws.service import ConnectionManager
from sitesim.core.dependencies import get_connection_manager, get_ws_room_service
from sitesim.engine.errors import GameError, RoomNotFound

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

CLOSE_UNKNOWN_PLAYER = 4404


@router.websocket("/ws/{room_code}/{player_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    room_code: str,
    player_id: str,
    service: RoomService = Depends(get_ws_room_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    logger.info(f"🔌 WebSocket connection attempt: {room_code}/{player_id}")

    try:
        state = await service.get_state(room_code)
    except RoomNotFound:
        await websocket.close(code=CLOSE_UNKNOWN_PLAYER)
        return
    if state.find_player(player_id) is None:
        await websocket.close(code=CLOSE_UNKNOWN_PLAYER)
        return

    await manager.connect(room_code, player_id, websocket)
    await websocket.send_json({
        "event": "connected",
        "data": {
            "room_code": room_code,
            "player_id": player_id,
            "active_players": manager.get_active_players(room_code),
            "state": state_payload(state),
        },
    })

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = ClientEvent.model_validate(json.loads(text))
            except (json.JSONDecodeError, ValidationError):
                await websocket.send_json(
                    error_event("invalid_format", "Message must be JSON with an 'event' field")
                )
                continue

            logger.info(f"📥 Received from {player_id}: {message.event}")
            await handle_client_event(service, websocket, room_code, player_id, message)

    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket disconnected: {room_code}/{player_id}")
        manager.disconnect(room_code, player_id)
        await manager.broadcast(
            room_code,
            {
                "event": "player_disconnected",
                "data": {
                    "player_id": player_id,
                    "active_players": manager.get_active_players(room_code),
                },
            },
        )

    except Exception as e:
        logger.error(f"❌ WebSocket error in {room_code}/{player_id}: {e}")
        manager.disconnect(room_code, player_id)


async def handle_client_event(
    service: RoomService,
    websocket: WebSocket,
    room_code: str,
    player_id: str,
    message: ClientEvent,
):
    """
    Dispatch one client event.

    Event Types:
        - heartbeat: connection check
        - get_state: resend the full room state to this socket
        - start: host starts the game
        - roll: {"chosen_deck_if_five": "UPG"}
        - apply: {"coins_spent": 2, "chosen_card_id": "U01"}
    """
    try:
        if message.event == "heartbeat":
            await websocket.send_json({
                "event": "pong",
                "data": {"timestamp": message.data.get("timestamp")},
            })

        elif message.event == "get_state":
            state = await service.get_state(room_code)
            await websocket.send_json({"event": "state_update", "data": state_payload(state)})

        elif message.event == "start":
            await service.start_game(room_code, player_id)

        elif message.event == "roll":
            data = RollData.model_validate(message.data)
            await service.roll(room_code, player_id, data.chosen_deck_if_five)

        elif message.event == "apply":
            data = ApplyData.model_validate(message.data)
            await service.apply(
                room_code,
                player_id,
                coins_spent=data.coins_spent,
                chosen_card_id=data.chosen_card_id,
                chosen_deck_if_five=data.chosen_deck_if_five,
            )

        else:
            await websocket.send_json(
                error_event("unknown_event", f"Unknown event type: {message.event}")
            )
            logger.warning(f"⚠️  Unknown event from {player_id}: {message.event}")

    except ValidationError as e:
        await websocket.send_json(
            error_event("invalid_payload", "Invalid event data", {"errors": [err["msg"] for err in e.errors()]})
        )
    except GameError as e:
        logger.info(f"Rejected {message.event} from {player_id} in {room_code}: {e.message}")
        await websocket.send_json(error_event(e.code, e.message, e.details))
