"""Dice resolver: face 1..6 -> which deck (if any) offers cards this turn."""

from __future__ import annotations

import random

from sitesim.engine.models import CardType, DeckType, DiceOutcome

DICE_TO_CARD: dict[int, CardType] = {
    1: CardType.PROD,
    2: CardType.UPG,
    3: CardType.FIN,
    4: CardType.SITE,
    5: CardType.CHOICE,
    6: CardType.NONE,
}

DEFAULT_CHOICE_DECK = DeckType.FIN

# CHOICE is resolved from the player's pick, NONE has no card phase
_FIXED_DECKS: dict[CardType, DeckType | None] = {
    CardType.PROD: DeckType.PROD,
    CardType.UPG: DeckType.UPG,
    CardType.FIN: DeckType.FIN,
    CardType.SITE: DeckType.SITE,
    CardType.NONE: None,
}


def roll_dice(rng: random.Random) -> DiceOutcome:
    roll = rng.randint(1, 6)
    return DiceOutcome(roll=roll, card_type=DICE_TO_CARD[roll])


def resolve_deck(card_type: CardType, chosen_deck: DeckType | None = None) -> DeckType | None:
    if card_type == CardType.CHOICE:
        return DeckType(chosen_deck) if chosen_deck else DEFAULT_CHOICE_DECK
    return _FIXED_DECKS[card_type]
