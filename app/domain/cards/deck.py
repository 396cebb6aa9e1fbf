from __future__ import annotations

import random
from typing import List, Optional

from app.domain.cards.model import ActionCard, Card, NumberCard, WildCard

COLORS = ("red", "yellow", "green", "blue")
ACTIONS = ("skip", "reverse", "draw2")

# per colour: one 0, two of 1-9, two of each action -> 25; x4 + 8 wilds
DECK_SIZE = 108
WILDS_PER_KIND = 4


def build_deck() -> List[Card]:
    """Canonical 108-card deck in a fixed order (unshuffled)."""
    deck: List[Card] = []
    for color in COLORS:
        deck.append(NumberCard(color=color, value=0))
        for value in range(1, 10):
            deck.append(NumberCard(color=color, value=value))
            deck.append(NumberCard(color=color, value=value))
        for _ in range(2):
            for action in ACTIONS:
                deck.append(ActionCard(color=color, action=action))

    for _ in range(WILDS_PER_KIND):
        deck.append(WildCard(action="wild"))
        deck.append(WildCard(action="wildDraw4"))
    return deck


def new_rng(seed: Optional[str] = None) -> random.Random:
    return random.Random(seed)


def shuffle(deck: List[Card], rng: random.Random) -> List[Card]:
    """Return a uniformly permuted copy of `deck` (Random.shuffle is Fisher-Yates)."""
    out = list(deck)
    rng.shuffle(out)
    return out
