"""
models.py — Room state definitions
===================================
Player, Activity, Card, Deck and GameState models.
The whole room is a single pydantic aggregate so it can be persisted
and broadcast as JSON without any extra mapping layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ─────────────────────────────────────────────────

class RoomStatus(str, Enum):
    LOBBY = "LOBBY"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class DeckType(str, Enum):
    FIN = "FIN"
    SITE = "SITE"
    UPG = "UPG"
    PROD = "PROD"


class CardType(str, Enum):
    """Outcome of a dice roll. CHOICE and NONE never label a real card."""
    FIN = "FIN"
    SITE = "SITE"
    UPG = "UPG"
    PROD = "PROD"
    CHOICE = "CHOICE"
    NONE = "NONE"


class BuffEffect(str, Enum):
    TIME_MINUS_1 = "TIME_MINUS_1"
    COST_MINUS_1 = "COST_MINUS_1"
    IGNORE_SITE_ONCE = "IGNORE_SITE_ONCE"


# ── Activities ────────────────────────────────────────────

class NoDependency(BaseModel):
    type: Literal["NONE"] = "NONE"


class FinishToStart(BaseModel):
    """Strict prerequisite: every id in `on` must be completed first."""
    type: Literal["FS"] = "FS"
    on: list[str] = Field(default_factory=list)


class StartToStart(BaseModel):
    """Soft overlap: partners are expected to run together, never required."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["SS"] = "SS"
    with_: list[str] = Field(default_factory=list, alias="with")


Dependency = Union[NoDependency, FinishToStart, StartToStart]


class Activity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    base_time: int
    base_cost: int
    req_workers: int = 0
    req_machines: int = 0
    dep: Dependency = Field(default_factory=NoDependency, discriminator="type")


# ── Cards ─────────────────────────────────────────────────

class BuffGrant(BaseModel):
    effect: BuffEffect
    turns: int = Field(ge=1)


class CardEffect(BaseModel):
    time_delta: int = 0
    cost_delta: int = 0
    prod_delta: int = 0
    coin_delta: int = 0
    buff: BuffGrant | None = None


class Card(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: DeckType
    title: str
    rules_text: str = ""
    effect: CardEffect = Field(default_factory=CardEffect)


# ── Buffs ─────────────────────────────────────────────────

class Buff(BaseModel):
    id: str                                             # granting card id
    remaining_turns: int
    effect: BuffEffect


class BuffSet(BaseModel):
    """
    The buffs a single player currently holds.

    `advance()` is the only way time passes for buffs: it is called once per
    resolved turn of the owning player, decrements every entry and evicts
    the ones that reach zero.
    """
    items: list[Buff] = Field(default_factory=list)

    def count(self, effect: BuffEffect) -> int:
        return sum(1 for b in self.items if b.effect == effect)

    def has(self, effect: BuffEffect) -> bool:
        return self.count(effect) > 0

    def grant(self, buff_id: str, effect: BuffEffect, turns: int) -> None:
        self.items.append(Buff(id=buff_id, remaining_turns=turns, effect=effect))

    def consume(self, effect: BuffEffect) -> Buff | None:
        """Remove and return the first buff with this effect."""
        for i, b in enumerate(self.items):
            if b.effect == effect:
                return self.items.pop(i)
        return None

    def advance(self) -> list[Buff]:
        """Tick one turn. Returns the buffs that expired."""
        kept, expired = [], []
        for b in self.items:
            b.remaining_turns -= 1
            (kept if b.remaining_turns > 0 else expired).append(b)
        self.items = kept
        return expired


# ── Player ────────────────────────────────────────────────

class Player(BaseModel):
    id: str
    nickname: str
    bp: int                                             # may go negative
    coins: int
    workers: int
    machines: int
    productivity: int = 0
    time: int = 0                                       # elapsed weeks
    activity_index: int = 0                             # [0, activity_index) are done
    buffs: BuffSet = Field(default_factory=BuffSet)


# ── Decks ─────────────────────────────────────────────────

class Deck(BaseModel):
    draw: list[str] = Field(default_factory=list)
    discard: list[str] = Field(default_factory=list)


class Decks(BaseModel):
    FIN: Deck = Field(default_factory=Deck)
    SITE: Deck = Field(default_factory=Deck)
    UPG: Deck = Field(default_factory=Deck)
    PROD: Deck = Field(default_factory=Deck)

    def get(self, deck_type: DeckType) -> Deck:
        return getattr(self, DeckType(deck_type).value)


# ── Turn ──────────────────────────────────────────────────

class OfferedCard(BaseModel):
    id: str
    title: str
    rules_text: str
    type: DeckType


class DiceOutcome(BaseModel):
    roll: int = Field(ge=1, le=6)
    card_type: CardType


class TurnContext(BaseModel):
    active_player_id: str
    roll: int | None = None
    card_type: CardType | None = None
    deck: DeckType | None = None                        # None on a NONE roll
    offered_card_ids: list[str] = Field(default_factory=list)
    offered_cards: list[OfferedCard] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def rolled(self) -> bool:
        return self.roll is not None


# ── Room ──────────────────────────────────────────────────

class GameState(BaseModel):
    room_code: str
    status: RoomStatus = RoomStatus.LOBBY
    host_player_id: str
    round: int = 1
    turn_index: int = 0
    players: list[Player] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    decks: Decks = Field(default_factory=Decks)
    log: list[str] = Field(default_factory=list)
    current_turn: TurnContext | None = None

    @property
    def active_player(self) -> Player:
        return self.players[self.turn_index]

    def find_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None


class PlayerScore(BaseModel):
    player_id: str
    nickname: str
    time: int
    bp: int
    productivity: int
    score: float
