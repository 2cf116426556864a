"""
schema.py — Room Request/Response Models
=========================================
Pydantic models for the /api/rooms endpoints.
The room itself is returned as the engine's GameState model.
"""

from pydantic import BaseModel, Field

from sitesim.engine.models import DeckType, GameState, PlayerScore


# ═══════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════

class CreateRoomRequest(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=30, description="Host nickname")

    class Config:
        json_schema_extra = {"example": {"nickname": "Efe"}}


class JoinRoomRequest(BaseModel):
    nickname: str = Field(..., min_length=1, max_length=30, description="Player nickname")


class PlayerActionRequest(BaseModel):
    """Any action that only needs to know who is acting (start)."""
    player_id: str = Field(..., description="Acting player id")


class RollRequest(PlayerActionRequest):
    chosen_deck_if_five: DeckType | None = Field(
        default=None,
        description="Deck to draw from on a 5 (CHOICE). Defaults to FIN.",
    )


class ApplyRequest(PlayerActionRequest):
    """
    Commit the rolled turn.

    coins_spent=0 takes the top card of the deck,
    coins_spent=2 takes `chosen_card_id`, which must be one of the offered cards.
    """
    coins_spent: int = Field(default=0, description="0 or 2")
    chosen_card_id: str | None = Field(default=None, description="Offered card id (with 2 coins)")
    chosen_deck_if_five: DeckType | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "player_id": "0b6f1a9e-2f5b-4c1e-9a57-3f1f0cbd4e11",
                "coins_spent": 2,
                "chosen_card_id": "U01",
            }
        }


# ═══════════════════════════════════════════════════
# RESPONSE MODELS
# ═══════════════════════════════════════════════════

class RoomJoinedResponse(BaseModel):
    room_code: str
    player_id: str = Field(..., description="Id the client must send with every action")
    state: GameState


class ScoresResponse(BaseModel):
    room_code: str
    scores: list[PlayerScore] = Field(..., description="Best first")
