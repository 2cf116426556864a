"""
router.py — Room REST Endpoints
================================

ENDPOINTS:
----------
POST   /api/rooms/                  → create room (caller becomes host)
GET    /api/rooms/{code}            → full room state
POST   /api/rooms/{code}/join       → join a LOBBY room
POST   /api/rooms/{code}/start      → host starts the game
POST   /api/rooms/{code}/roll       → active player rolls, cards are offered
POST   /api/rooms/{code}/apply      → active player commits the turn
GET    /api/rooms/{code}/scores     → final ranking (FINISHED only)
DELETE /api/rooms/{code}            → drop the room

Engine errors are not caught here; core/errors.py turns them into
409 / 404 / 500 JSON responses.
"""

from fastapi import APIRouter, Depends, Response, status

from sitesim.apps.room.schema import (
    ApplyRequest,
    CreateRoomRequest,
    JoinRoomRequest,
    PlayerActionRequest,
    RollRequest,
    RoomJoinedResponse,
    ScoresResponse,
)
from sitesim.apps.room.service import RoomService
from sitesim.core.dependencies import get_room_service
from sitesim.engine.models import GameState

router = APIRouter(
    prefix="/api/rooms",
    tags=["rooms"],
    responses={
        404: {"description": "Room not found"},
        409: {"description": "Action rejected"},
    },
)


@router.post("/", response_model=RoomJoinedResponse, status_code=status.HTTP_201_CREATED)
async def create_room_endpoint(
    req: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
):
    state, player_id = await service.create_room(req.nickname)
    return RoomJoinedResponse(room_code=state.room_code, player_id=player_id, state=state)


@router.get("/{room_code}", response_model=GameState)
async def get_room_endpoint(room_code: str, service: RoomService = Depends(get_room_service)):
    return await service.get_state(room_code)


@router.post("/{room_code}/join", response_model=RoomJoinedResponse)
async def join_room_endpoint(
    room_code: str,
    req: JoinRoomRequest,
    service: RoomService = Depends(get_room_service),
):
    """
    Join a room that is still in LOBBY.

    Returns:
        200: the new player id and room state
        404: Room not found
        409: Game already started
    """
    state, player_id = await service.join_room(room_code, req.nickname)
    return RoomJoinedResponse(room_code=room_code, player_id=player_id, state=state)


@router.post("/{room_code}/start", response_model=GameState)
async def start_game_endpoint(
    room_code: str,
    req: PlayerActionRequest,
    service: RoomService = Depends(get_room_service),
):
    return await service.start_game(room_code, req.player_id)


@router.post("/{room_code}/roll", response_model=GameState)
async def roll_endpoint(
    room_code: str,
    req: RollRequest,
    service: RoomService = Depends(get_room_service),
):
    return await service.roll(room_code, req.player_id, req.chosen_deck_if_five)


@router.post("/{room_code}/apply", response_model=GameState)
async def apply_endpoint(
    room_code: str,
    req: ApplyRequest,
    service: RoomService = Depends(get_room_service),
):
    return await service.apply(
        room_code,
        req.player_id,
        coins_spent=req.coins_spent,
        chosen_card_id=req.chosen_card_id,
        chosen_deck_if_five=req.chosen_deck_if_five,
    )


@router.get("/{room_code}/scores", response_model=ScoresResponse)
async def scores_endpoint(room_code: str, service: RoomService = Depends(get_room_service)):
    scores = await service.scores(room_code)
    return ScoresResponse(room_code=room_code, scores=scores)


@router.delete("/{room_code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room_endpoint(room_code: str, service: RoomService = Depends(get_room_service)):
    await service.delete_room(room_code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
