import random
from collections import Counter

from app.domain.cards.deck import DECK_SIZE, build_deck, new_rng, shuffle
from app.domain.cards.model import ActionCard, NumberCard, WildCard


def test_build_deck_composition():
    deck = build_deck()
    assert len(deck) == DECK_SIZE == 108

    counts = Counter(deck)
    for color in ("red", "yellow", "green", "blue"):
        assert counts[NumberCard(color=color, value=0)] == 1
        for value in range(1, 10):
            assert counts[NumberCard(color=color, value=value)] == 2
        for action in ("skip", "reverse", "draw2"):
            assert counts[ActionCard(color=color, action=action)] == 2
        assert sum(1 for c in deck if getattr(c, "color", None) == color) == 25

    assert counts[WildCard(action="wild")] == 4
    assert counts[WildCard(action="wildDraw4")] == 4


def test_build_deck_is_deterministic():
    assert build_deck() == build_deck()


def test_shuffle_is_a_permutation_and_leaves_input_alone():
    deck = build_deck()
    out = shuffle(deck, random.Random(42))
    assert Counter(out) == Counter(deck)
    assert deck == build_deck()
    assert out != deck


def test_shuffle_is_reproducible_with_same_seed():
    a = shuffle(build_deck(), new_rng("room-1:seed"))
    b = shuffle(build_deck(), new_rng("room-1:seed"))
    c = shuffle(build_deck(), new_rng("room-1:other"))
    assert a == b
    assert a != c
