"""
schema.py — WebSocket Event Schemas
====================================

MESSAGE FORMAT:
---------------
{
    "event": "event_name",
    "data": {...}
}

Client → Server: heartbeat, get_state, start, roll, apply
Server → Client: connected, player_connected, player_disconnected,
                 state_update (broadcast), pong, error (acting socket only)
"""

from pydantic import BaseModel, Field

from sitesim.engine.models import DeckType


# ═══════════════════════════════════════════════════
# CLIENT → SERVER
# ═══════════════════════════════════════════════════

class ClientEvent(BaseModel):
    event: str = Field(description="Event type")
    data: dict = Field(default_factory=dict, description="Event payload")


class RollData(BaseModel):
    chosen_deck_if_five: DeckType | None = None


class ApplyData(BaseModel):
    coins_spent: int = 0
    chosen_card_id: str | None = None
    chosen_deck_if_five: DeckType | None = None


# ═══════════════════════════════════════════════════
# SERVER → CLIENT
# ═══════════════════════════════════════════════════

class ServerEvent(BaseModel):
    event: str = Field(description="Event type")
    data: dict = Field(description="Event payload")


def error_event(code: str, message: str, details: dict | None = None) -> dict:
    return ServerEvent(
        event="error",
        data={"code": code, "message": message, "details": details or {}},
    ).model_dump()
