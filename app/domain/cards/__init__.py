from __future__ import annotations

from .model import (
    ActionCard,
    Card,
    NumberCard,
    WildCard,
    cards_equal,
    matches,
    parse_card,
)
from .deck import DECK_SIZE, build_deck, shuffle

__all__ = [
    "ActionCard",
    "Card",
    "NumberCard",
    "WildCard",
    "cards_equal",
    "matches",
    "parse_card",
    "DECK_SIZE",
    "build_deck",
    "shuffle",
]
