"""
decks.py — Per-type draw / discard piles
=========================================
Offering cards is a peek (`draw_top`); only the card that is actually used
moves to the discard pile (`pop_top` / `discard_card`).
draw + discard always holds every card id of the deck exactly once.
"""

from __future__ import annotations

import random

from sitesim.engine.models import Card, Deck, Decks, DeckType


def _refill(deck: Deck, n: int, rng: random.Random) -> None:
    if len(deck.draw) >= n or not deck.discard:
        return
    pool = deck.draw + deck.discard
    rng.shuffle(pool)
    deck.draw = pool
    deck.discard = []


def draw_top(deck: Deck, n: int, rng: random.Random) -> list[str]:
    """Peek the first `n` ids, reshuffling the discard pile in if draw is short."""
    _refill(deck, n, rng)
    return deck.draw[:n]


def pop_top(deck: Deck, rng: random.Random) -> str | None:
    """Take the top card and put it on the discard pile."""
    top = draw_top(deck, 1, rng)
    if not top:
        return None
    card_id = deck.draw.pop(0)
    deck.discard.append(card_id)
    return card_id


def discard_card(deck: Deck, card_id: str) -> None:
    """Move a specific id from the draw pile to the discard pile."""
    deck.draw.remove(card_id)
    deck.discard.append(card_id)


def new_decks(cards: list[Card], rng: random.Random) -> Decks:
    decks = Decks()
    for deck_type in DeckType:
        ids = [c.id for c in cards if c.type == deck_type]
        rng.shuffle(ids)
        decks.get(deck_type).draw = ids
    return decks
