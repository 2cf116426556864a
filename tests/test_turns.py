import random

import pytest

from sitesim.engine import catalog, turns
from sitesim.engine.errors import DataIntegrityError, RejectedAction
from sitesim.engine.models import CardType, DeckType, RoomStatus


def _snapshot(state):
    return state.model_dump()


# ═══════════════════════════════════════════════════
# LOBBY
# ═══════════════════════════════════════════════════

def test_new_room_defaults(lobby_state):
    host = lobby_state.players[0]
    assert lobby_state.status == RoomStatus.LOBBY
    assert (host.bp, host.coins, host.workers, host.machines) == (30, 6, 3, 1)
    assert (host.productivity, host.time, host.activity_index) == (0, 0, 0)
    assert lobby_state.log[0] == "Room ROOM1 created."
    assert lobby_state.log[-1] == "Guest joined."
    assert len(lobby_state.activities) == len(catalog.get_activities())


def test_only_host_can_start(lobby_state):
    with pytest.raises(RejectedAction, match="Only host can start."):
        turns.start_game(lobby_state, "guest")
    assert lobby_state.status == RoomStatus.LOBBY


def test_start_needs_two_players(rng):
    state = turns.new_game_state("SOLO1", "host", "Host", rng=rng)
    with pytest.raises(RejectedAction, match="Need at least 2 players."):
        turns.start_game(state, "host")


def test_start_opens_first_turn(active_state):
    assert active_state.status == RoomStatus.ACTIVE
    assert active_state.round == 1
    assert active_state.turn_index == 0
    assert active_state.current_turn.active_player_id == "host"
    assert not active_state.current_turn.rolled
    assert active_state.log[-1] == "Game started."


def test_no_join_or_restart_after_start(active_state):
    with pytest.raises(RejectedAction, match="Game already started"):
        turns.add_player(active_state, "late", "Late")
    with pytest.raises(RejectedAction, match="Game already started"):
        turns.start_game(active_state, "host")


def test_lobby_rejects_turn_actions(lobby_state, rng):
    with pytest.raises(RejectedAction, match="Game not active."):
        turns.roll_and_offer(lobby_state, "host", rng=rng)


# ═══════════════════════════════════════════════════
# ROLL
# ═══════════════════════════════════════════════════

def test_roll_offers_top_two_without_drawing(active_state, fixed_roll):
    top_two = active_state.decks.FIN.draw[:2]
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(3))

    assert ctx.roll == 3
    assert ctx.card_type == CardType.FIN
    assert ctx.deck == DeckType.FIN
    assert ctx.offered_card_ids == top_two
    assert [c.id for c in ctx.offered_cards] == top_two
    assert active_state.decks.FIN.draw[:2] == top_two
    assert active_state.decks.FIN.discard == []


def test_roll_none_offers_nothing(active_state, fixed_roll):
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(6))
    assert ctx.card_type == CardType.NONE
    assert ctx.deck is None
    assert ctx.offered_card_ids == []


@pytest.mark.parametrize("chosen, expected", [(None, DeckType.FIN), (DeckType.UPG, DeckType.UPG)])
def test_choice_roll_uses_chosen_deck(active_state, fixed_roll, chosen, expected):
    ctx = turns.roll_and_offer(active_state, "host", chosen, rng=fixed_roll(5))
    assert ctx.card_type == CardType.CHOICE
    assert ctx.deck == expected


def test_roll_out_of_turn(active_state, rng):
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Not your turn."):
        turns.roll_and_offer(active_state, "guest", rng=rng)
    assert _snapshot(active_state) == before


def test_second_roll_rejected(active_state, rng):
    turns.roll_and_offer(active_state, "host", rng=rng)
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Already rolled."):
        turns.roll_and_offer(active_state, "host", rng=rng)
    assert _snapshot(active_state) == before


def test_roll_previews_warnings(active_state, fixed_roll):
    # B1 waits on B2, which comes later in the sequence
    active_state.activities = catalog.normalize_activities([
        {"id": "B1", "name": "Crane pad", "baseTime": 2, "baseCost": 3, "reqMachines": 2,
         "dep": {"type": "FS", "on": ["B2"]}},
        {"id": "B2", "name": "Access road", "baseTime": 1, "baseCost": 2},
    ])
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(6))
    assert len(ctx.warnings) == 2
    assert ctx.warnings[0] == "Prereq missing: B2"
    assert ctx.warnings[1].startswith("Resource short: need W0/M2")


def test_roll_preview_is_empty_when_ready(active_state, fixed_roll):
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(6))
    # A01 has no prerequisite and the starting crew covers W2/M1
    assert ctx.warnings == []


def test_engine_requires_injected_rng(active_state):
    with pytest.raises(TypeError):
        turns.roll_and_offer(active_state, "host")
    with pytest.raises(TypeError):
        turns.new_game_state("NORNG", "host", "Host")


# ═══════════════════════════════════════════════════
# APPLY
# ═══════════════════════════════════════════════════

def test_apply_before_roll_changes_nothing(active_state, rng):
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Roll first."):
        turns.apply_turn(active_state, "host", rng=rng)
    assert _snapshot(active_state) == before


def test_apply_out_of_turn(active_state, rng):
    turns.roll_and_offer(active_state, "host", rng=rng)
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Not your turn."):
        turns.apply_turn(active_state, "guest", rng=rng)
    assert _snapshot(active_state) == before


def test_invalid_coin_spend(active_state, rng):
    turns.roll_and_offer(active_state, "host", rng=rng)
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Invalid coin spend."):
        turns.apply_turn(active_state, "host", coins_spent=1, rng=rng)
    assert _snapshot(active_state) == before


def test_not_enough_coins(active_state, fixed_roll, rng):
    active_state.players[0].coins = 1
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(3))
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Not enough coins."):
        turns.apply_turn(active_state, "host", coins_spent=2, chosen_card_id=ctx.offered_card_ids[0], rng=rng)
    assert _snapshot(active_state) == before


def test_pick_must_be_offered(active_state, fixed_roll, rng):
    turns.roll_and_offer(active_state, "host", rng=fixed_roll(3))
    before = _snapshot(active_state)
    with pytest.raises(RejectedAction, match="Invalid chosen card."):
        turns.apply_turn(active_state, "host", coins_spent=2, chosen_card_id="S01", rng=rng)
    assert _snapshot(active_state) == before


def test_pick_on_none_roll_is_rejected(active_state, fixed_roll, rng):
    turns.roll_and_offer(active_state, "host", rng=fixed_roll(6))
    with pytest.raises(RejectedAction, match="Invalid chosen card."):
        turns.apply_turn(active_state, "host", coins_spent=2, chosen_card_id="F01", rng=rng)


def test_none_roll_turn(active_state, fixed_roll, rng):
    turns.roll_and_offer(active_state, "host", rng=fixed_roll(6))
    turns.apply_turn(active_state, "host", rng=rng)

    host = active_state.players[0]
    # A01: 2 weeks, 4 BP, clean
    assert (host.time, host.bp, host.coins, host.activity_index) == (2, 26, 7, 1)
    assert "card=NONE" in active_state.log[-1]
    assert active_state.turn_index == 1
    assert active_state.round == 1
    assert active_state.current_turn.active_player_id == "guest"
    assert not active_state.current_turn.rolled


def test_round_increments_on_wrap(active_state, fixed_roll, rng):
    for pid in ("host", "guest"):
        turns.roll_and_offer(active_state, pid, rng=fixed_roll(6))
        turns.apply_turn(active_state, pid, rng=rng)
    assert active_state.turn_index == 0
    assert active_state.round == 2


def test_free_take_pops_top_card(active_state, fixed_roll, rng):
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(1))
    top = ctx.offered_card_ids[0]
    turns.apply_turn(active_state, "host", coins_spent=0, rng=rng)

    prod = active_state.decks.PROD
    assert prod.discard == [top]
    assert top not in prod.draw
    assert f"card={top}" in active_state.log[-1]


def test_paid_pick_takes_second_card(active_state, fixed_roll, rng):
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(3))
    first, second = ctx.offered_card_ids
    turns.apply_turn(active_state, "host", coins_spent=2, chosen_card_id=second, rng=rng)

    fin = active_state.decks.FIN
    assert fin.discard == [second]
    assert fin.draw[0] == first

    card = catalog.find_card(second)
    bonus = 1 if "clean +1 coin" in active_state.log[-1] else 0
    assert active_state.players[0].coins == 6 - 2 + card.effect.coin_delta + bonus


def test_deck_is_fixed_at_roll_time(active_state, fixed_roll, rng):
    ctx = turns.roll_and_offer(active_state, "host", DeckType.UPG, rng=fixed_roll(5))
    top = ctx.offered_card_ids[0]
    turns.apply_turn(active_state, "host", chosen_deck_if_five=DeckType.SITE, rng=rng)
    assert active_state.decks.UPG.discard == [top]
    assert active_state.decks.SITE.discard == []


def test_missing_card_is_skipped_with_log(active_state, fixed_roll, rng):
    active_state.decks.FIN.draw.insert(0, "ZZZ")
    ctx = turns.roll_and_offer(active_state, "host", rng=fixed_roll(3))
    assert ctx.offered_card_ids[0] == "ZZZ"

    turns.apply_turn(active_state, "host", rng=rng)
    assert "⚠️ Card not found: ZZZ" in active_state.log
    assert active_state.players[0].activity_index == 1


def test_empty_catalog_aborts_turn(active_state, rng):
    active_state.activities = []
    before = _snapshot(active_state)
    with pytest.raises(DataIntegrityError):
        turns.roll_and_offer(active_state, "host", rng=rng)
    assert _snapshot(active_state) == before


# ═══════════════════════════════════════════════════
# FULL GAME
# ═══════════════════════════════════════════════════

def test_full_game_terminates_with_monotonic_progress():
    rng = random.Random(42)
    state = turns.new_game_state("FULL1", "a", "Ann", rng=rng)
    turns.add_player(state, "b", "Bo")
    turns.add_player(state, "c", "Cy")
    turns.start_game(state, "a")

    total = len(state.activities)
    turns_played = 0
    while state.status == RoomStatus.ACTIVE:
        active = state.active_player
        index_before = active.activity_index
        time_before = active.time

        ctx = turns.roll_and_offer(state, active.id, rng=rng)
        if ctx.offered_card_ids and active.coins >= 2 and rng.random() < 0.3:
            turns.apply_turn(state, active.id, 2, ctx.offered_card_ids[-1], rng=rng)
        else:
            turns.apply_turn(state, active.id, rng=rng)

        assert active.activity_index == index_before + 1
        assert active.time >= time_before
        assert active.coins >= 0
        turns_played += 1
        assert turns_played <= total * len(state.players)

    assert state.status == RoomStatus.FINISHED
    assert turns_played == total * len(state.players)
    assert all(p.activity_index == total for p in state.players)
    assert state.round == total
    assert state.current_turn is None
    assert state.log[-1] == "Game finished."

    with pytest.raises(RejectedAction, match="Game not active."):
        turns.roll_and_offer(state, "a", rng=rng)
