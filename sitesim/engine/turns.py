"""
turns.py — Room lifecycle and turn protocol
============================================
LOBBY → ACTIVE → FINISHED

Every ACTIVE turn is two steps for the active player:

    roll_and_offer()   dice → deck → peek 2 cards (nothing leaves the deck)
    apply_turn()       pay 0 or 2 coins → take a card → execute activity
                       → rotate turn / count rounds / detect the end

Validation always runs before the first mutation, so a RejectedAction
leaves the room exactly as it was and writes nothing to the room log.
The engine holds no locks; callers serialize actions per room.
"""

from __future__ import annotations

import logging
import random

from sitesim.engine import catalog
from sitesim.engine.decks import discard_card, draw_top, new_decks, pop_top
from sitesim.engine.dice import resolve_deck, roll_dice
from sitesim.engine.errors import DataIntegrityError, RejectedAction
from sitesim.engine.models import (
    Activity,
    Card,
    CardType,
    DeckType,
    GameState,
    OfferedCard,
    Player,
    RoomStatus,
    TurnContext,
)
from sitesim.engine.modifiers import apply_execution, resolve_activity
from sitesim.engine.prereqs import completed_ids, preview_warnings

logger = logging.getLogger(__name__)

INITIAL_PLAYER_STATE = {
    "bp": 30,
    "coins": 6,
    "workers": 3,
    "machines": 1,
    "productivity": 0,
    "time": 0,
}

MIN_PLAYERS = 2
OFFER_SIZE = 2
ALLOWED_COIN_SPEND = (0, 2)
PICK_COST = 2


# ═══════════════════════════════════════════════════
# ROOM SETUP
# ═══════════════════════════════════════════════════

def new_player(player_id: str, nickname: str) -> Player:
    return Player(id=player_id, nickname=nickname, **INITIAL_PLAYER_STATE)


def new_game_state(
    room_code: str,
    host_player_id: str,
    host_nickname: str,
    rng: random.Random,
) -> GameState:
    """Fresh LOBBY room with the host seated and all four decks shuffled."""
    return GameState(
        room_code=room_code,
        status=RoomStatus.LOBBY,
        host_player_id=host_player_id,
        players=[new_player(host_player_id, host_nickname)],
        activities=catalog.get_activities(),
        decks=new_decks(catalog.get_cards(), rng),
        log=[f"Room {room_code} created."],
    )


def add_player(state: GameState, player_id: str, nickname: str) -> Player:
    if state.status != RoomStatus.LOBBY:
        raise RejectedAction("Game already started")
    player = new_player(player_id, nickname)
    state.players.append(player)
    state.log.append(f"{nickname} joined.")
    return player


def start_game(state: GameState, acting_player_id: str) -> None:
    if state.status != RoomStatus.LOBBY:
        raise RejectedAction("Game already started")
    if acting_player_id != state.host_player_id:
        raise RejectedAction("Only host can start.")
    if len(state.players) < MIN_PLAYERS:
        raise RejectedAction("Need at least 2 players.")

    state.status = RoomStatus.ACTIVE
    state.round = 1
    state.turn_index = 0
    state.current_turn = TurnContext(active_player_id=state.players[0].id)
    state.log.append("Game started.")


# ═══════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════

def _require_turn(state: GameState, acting_player_id: str) -> Player:
    if state.status != RoomStatus.ACTIVE:
        raise RejectedAction("Game not active.")
    active = state.active_player
    if active.id != acting_player_id:
        raise RejectedAction("Not your turn.")
    return active


def _context(state: GameState) -> TurnContext:
    if state.current_turn is None or state.current_turn.active_player_id != state.active_player.id:
        state.current_turn = TurnContext(active_player_id=state.active_player.id)
    return state.current_turn


def current_activity(state: GameState, player: Player) -> Activity:
    """The activity under the player's cursor. Missing or malformed data aborts the turn."""
    if not state.activities:
        raise DataIntegrityError("Activity catalog is empty.")
    if not 0 <= player.activity_index < len(state.activities):
        raise DataIntegrityError(
            "No activity at cursor.",
            {"player_id": player.id, "activity_index": player.activity_index},
        )
    activity = state.activities[player.activity_index]
    if not activity.id:
        raise DataIntegrityError("Activity entry has no id.", {"activity_index": player.activity_index})
    return activity


def _offered_card(card_id: str, deck: DeckType) -> OfferedCard:
    card = catalog.find_card(card_id)
    if card is None:
        return OfferedCard(id=card_id, title="Unknown", rules_text="", type=deck)
    return OfferedCard(id=card.id, title=card.title, rules_text=card.rules_text, type=card.type)


def is_finished(state: GameState) -> bool:
    total = len(state.activities)
    return all(p.activity_index >= total for p in state.players)


# ═══════════════════════════════════════════════════
# ROLL PHASE
# ═══════════════════════════════════════════════════

def roll_and_offer(
    state: GameState,
    acting_player_id: str,
    chosen_deck_if_five: DeckType | None = None,
    *,
    rng: random.Random,
) -> TurnContext:
    active = _require_turn(state, acting_player_id)
    pending = state.current_turn
    if pending is not None and pending.active_player_id == active.id and pending.rolled:
        raise RejectedAction("Already rolled.")
    activity = current_activity(state, active)

    ctx = _context(state)
    outcome = roll_dice(rng)
    deck_type = resolve_deck(outcome.card_type, chosen_deck_if_five)

    ctx.roll = outcome.roll
    ctx.card_type = outcome.card_type
    ctx.deck = deck_type
    if deck_type is None:
        ctx.offered_card_ids = []
        ctx.offered_cards = []
    else:
        offered = draw_top(state.decks.get(deck_type), OFFER_SIZE, rng)
        ctx.offered_card_ids = list(offered)
        ctx.offered_cards = [_offered_card(cid, deck_type) for cid in offered]

    completed = completed_ids(state.activities, active.activity_index)
    ctx.warnings = preview_warnings(activity, active, completed)

    deck_label = deck_type.value if deck_type else "no card"
    state.log.append(f"{active.nickname} rolled {outcome.roll} ({outcome.card_type.value} → {deck_label}).")
    return ctx


# ═══════════════════════════════════════════════════
# APPLY PHASE
# ═══════════════════════════════════════════════════

def _validate_apply(
    state: GameState,
    acting_player_id: str,
    coins_spent: int,
    chosen_card_id: str | None,
) -> tuple[Player, TurnContext, Activity]:
    active = _require_turn(state, acting_player_id)
    ctx = state.current_turn
    if ctx is None or ctx.active_player_id != active.id or not ctx.rolled:
        raise RejectedAction("Roll first.")
    if coins_spent not in ALLOWED_COIN_SPEND:
        raise RejectedAction("Invalid coin spend.", details={"allowed": list(ALLOWED_COIN_SPEND)})
    if coins_spent > active.coins:
        raise RejectedAction("Not enough coins.")
    if coins_spent == PICK_COST:
        # on a no-card roll the offer is empty, so every pick is invalid
        if not chosen_card_id or chosen_card_id not in ctx.offered_card_ids:
            raise RejectedAction("Invalid chosen card.", details={"offered": ctx.offered_card_ids})
    activity = current_activity(state, active)
    return active, ctx, activity


def _take_card(
    state: GameState,
    ctx: TurnContext,
    coins_spent: int,
    chosen_card_id: str | None,
    rng: random.Random,
) -> str | None:
    if ctx.deck is None:
        return None
    deck = state.decks.get(ctx.deck)
    if coins_spent == PICK_COST:
        discard_card(deck, chosen_card_id)
        return chosen_card_id
    return pop_top(deck, rng)


def _lookup_card(state: GameState, card_id: str | None) -> Card | None:
    if card_id is None:
        return None
    card = catalog.find_card(card_id)
    if card is None:
        logger.warning(f"⚠️  Card not found in room {state.room_code}: {card_id}")
        state.log.append(f"⚠️ Card not found: {card_id}")
    return card


def _advance_turn(state: GameState) -> None:
    if is_finished(state):
        state.status = RoomStatus.FINISHED
        state.current_turn = None
        state.log.append("Game finished.")
        return

    state.turn_index = (state.turn_index + 1) % len(state.players)
    if state.turn_index == 0:
        state.round += 1
    state.current_turn = TurnContext(active_player_id=state.active_player.id)


def apply_turn(
    state: GameState,
    acting_player_id: str,
    coins_spent: int = 0,
    chosen_card_id: str | None = None,
    chosen_deck_if_five: DeckType | None = None,
    *,
    rng: random.Random,
) -> GameState:
    """
    Resolve the active player's turn.

    Args:
        state: room, mutated in place
        acting_player_id: must be the active player
        coins_spent: 0 takes the top card, 2 takes `chosen_card_id`
        chosen_card_id: one of the offered ids (only with 2 coins)
        chosen_deck_if_five: accepted for symmetry with the roll call; the
            deck picked at roll time is the one used
        rng: randomness for reshuffles

    Raises:
        RejectedAction: not allowed right now, nothing changed
        DataIntegrityError: catalog problem, nothing changed
    """
    active, ctx, activity = _validate_apply(state, acting_player_id, coins_spent, chosen_card_id)

    active.coins -= coins_spent
    card_id = _take_card(state, ctx, coins_spent, chosen_card_id, rng)
    card = _lookup_card(state, card_id)

    completed = completed_ids(state.activities, active.activity_index)
    result = resolve_activity(activity, active, completed, card)
    apply_execution(active, result, card)

    line = (
        f"{active.nickname} executed {activity.id} ({activity.name}) | "
        f"+{result.actual_time}w, -{result.actual_cost}BP, card={card_id or 'NONE'}"
    )
    if result.warnings:
        line += " | " + "; ".join(result.warnings)
    if result.site_ignored:
        line += " | SITE card ignored"
    if result.clean:
        line += " | clean +1 coin"
    state.log.append(line)

    _advance_turn(state)
    return state
