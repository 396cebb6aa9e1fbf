import random

import pytest

from app.domain.cards.deck import build_deck
from app.domain.cards.model import ActionCard, NumberCard, WildCard, is_wild
from app.domain.common.errors import (
    InvalidState,
    ResourceExhausted,
    RuleViolation,
    TurnViolation,
    Unauthorized,
)
from app.domain.game import engine
from app.domain.game.rules import HAND_SIZE, find_in_hand
from app.domain.game.state import GameSnapshot
from app.store.models import PlayerStore, RoomStore


def n(color, value):
    return NumberCard(color=color, value=value)


def act(color, action):
    return ActionCard(color=color, action=action)


def wild(action="wild", color=None):
    return WildCard(action=action, chosen_color=color)


def make_snapshot(hands, top, **room_fields):
    """Playing room where the draw pile holds every card not dealt or on top."""
    pile = build_deck()
    for card in [c for hand in hands.values() for c in hand] + [top]:
        idx = find_in_hand(pile, card)
        assert idx >= 0, f"deck has no spare {card}"
        pile.pop(idx)

    players = [
        PlayerStore(pid=pid, name=pid.upper(), is_host=(i == 0), hand_count=len(hand), joined_at=i)
        for i, (pid, hand) in enumerate(hands.items())
    ]
    fields = {"status": "playing", "current_turn": players[0].pid, "draw_pile": pile}
    fields.update(room_fields)
    room = RoomStore(top_card=top, discard_pile=[top], **fields)
    return GameSnapshot(room_code="R1", room=room, players=players, hands={k: list(v) for k, v in hands.items()})


def waiting_room(pids):
    players = [PlayerStore(pid=pid, name=pid.upper(), is_host=(i == 0), joined_at=i) for i, pid in enumerate(pids)]
    return GameSnapshot(room_code="R1", room=RoomStore(status="waiting"), players=players)


# ----------------------------
# start_game
# ----------------------------

def test_start_game_deals_and_flips_non_wild():
    snap = engine.start_game(waiting_room(["a", "b", "c"]), "a", random.Random(7))
    room = snap.room

    assert room.status == "playing"
    assert room.current_turn == "a"
    assert room.direction == 1
    assert room.pending_draw == 0 and room.pending_type == "none"
    assert room.chain_value is None and room.chain_player is None
    assert not is_wild(room.top_card)
    assert room.discard_pile == [room.top_card]
    for p in snap.players:
        assert len(snap.hand_of(p.pid)) == HAND_SIZE
        assert p.hand_count == HAND_SIZE
    assert snap.card_total() == 108
    assert snap.invariant_violations() == []


def test_start_game_same_seed_same_deal():
    base = waiting_room(["a", "b"])
    first = engine.start_game(base, "a", random.Random("seed"))
    second = engine.start_game(base, "a", random.Random("seed"))
    assert first.model_dump() == second.model_dump()
    # input untouched
    assert base.room.status == "waiting"
    assert base.hands == {}


class _WildsOnTopRng:
    """Arranges the deck so the first two cards flipped after dealing are wilds."""

    def __init__(self, dealt):
        self.dealt = dealt

    def shuffle(self, cards):
        wilds = [c for c in cards if is_wild(c)]
        rest = [c for c in cards if not is_wild(c)]
        cards[:] = wilds[:6] + rest[: -self.dealt] + wilds[6:] + rest[-self.dealt:]


def test_start_game_returns_flipped_wilds_under_the_pile():
    snap = engine.start_game(waiting_room(["a", "b"]), "a", _WildsOnTopRng(dealt=2 * HAND_SIZE))

    assert not is_wild(snap.room.top_card)
    assert all(is_wild(c) for c in snap.room.draw_pile[:2])
    assert not any(is_wild(c) for hand in snap.hands.values() for c in hand)
    assert snap.card_total() == 108


def test_start_game_needs_two_players():
    with pytest.raises(InvalidState):
        engine.start_game(waiting_room(["a"]), "a", random.Random(1))


def test_start_game_only_from_waiting():
    snap = engine.start_game(waiting_room(["a", "b"]), "a", random.Random(1))
    with pytest.raises(InvalidState):
        engine.start_game(snap, "a", random.Random(1))


def test_start_game_requires_caller():
    with pytest.raises(Unauthorized):
        engine.start_game(waiting_room(["a", "b"]), None, random.Random(1))


# ----------------------------
# play_card: rejections
# ----------------------------

def test_illegal_play_rejected_without_mutation():
    snap = make_snapshot({"a": [n("blue", 3), n("green", 1)], "b": [n("yellow", 2)]}, top=n("red", 5))
    before = snap.model_dump()

    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "a", n("blue", 3))

    assert exc.value.code == "ILLEGAL_PLAY"
    assert snap.model_dump() == before


def test_play_requires_turn():
    snap = make_snapshot({"a": [n("red", 3)], "b": [n("red", 2)]}, top=n("red", 5))
    with pytest.raises(TurnViolation):
        engine.play_card(snap, "b", n("red", 2))


def test_play_requires_card_in_hand():
    snap = make_snapshot({"a": [n("red", 3), n("red", 4)], "b": [n("red", 2)]}, top=n("red", 5))
    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "a", n("red", 9))
    assert exc.value.code == "CARD_NOT_IN_HAND"


def test_play_requires_playing_status():
    snap = make_snapshot({"a": [n("red", 3)], "b": [n("red", 2)]}, top=n("red", 5))
    snap.room.status = "waiting"
    with pytest.raises(InvalidState):
        engine.play_card(snap, "a", n("red", 3))


def test_wild_needs_a_colour():
    snap = make_snapshot({"a": [wild(), n("red", 4)], "b": [n("red", 2)]}, top=n("red", 5))
    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "a", wild())
    assert exc.value.code == "COLOR_REQUIRED"


def test_wild_top_enforces_chosen_colour():
    snap = make_snapshot(
        {"a": [n("red", 4), n("green", 2)], "b": [n("red", 2)]},
        top=wild(color="green"),
    )
    with pytest.raises(RuleViolation):
        engine.play_card(snap, "a", n("red", 4))

    nxt = engine.play_card(snap, "a", n("green", 2))
    assert nxt.room.top_card == n("green", 2)
    assert nxt.room.current_turn == "b"


def test_played_wild_keeps_its_colour_on_top():
    snap = make_snapshot({"a": [wild(), n("red", 4)], "b": [n("red", 2)]}, top=n("red", 5))
    nxt = engine.play_card(snap, "a", wild(color="blue"))
    assert nxt.room.top_card == wild(color="blue")
    assert nxt.room.current_turn == "b"
    assert nxt.hand_of("a") == [n("red", 4)]
    assert nxt.get_player("a").hand_count == 1


# ----------------------------
# stacking
# ----------------------------

def test_stacking_scenario():
    snap = make_snapshot(
        {
            "a": [act("red", "draw2"), n("red", 1)],
            "b": [act("blue", "draw2"), n("blue", 1)],
            "c": [n("green", 3), n("yellow", 4)],
        },
        top=n("red", 9),
    )

    snap = engine.play_card(snap, "a", act("red", "draw2"))
    assert snap.room.pending_draw == 2
    assert snap.room.pending_type == "draw2"
    assert snap.room.current_turn == "b"

    snap = engine.play_card(snap, "b", act("blue", "draw2"))
    assert snap.room.pending_draw == 4
    assert snap.room.current_turn == "c"

    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "c", n("green", 3))
    assert exc.value.code == "MUST_DRAW"
    assert exc.value.details["amount"] == 4

    pile_before = len(snap.room.draw_pile)
    snap = engine.draw_one(snap, "c")
    assert len(snap.hand_of("c")) == 6
    assert snap.get_player("c").hand_count == 6
    assert len(snap.room.draw_pile) == pile_before - 4
    assert snap.room.pending_draw == 0
    assert snap.room.pending_type == "none"
    assert snap.room.current_turn == "a"
    assert snap.invariant_violations() == []


def test_draw2_does_not_stack_on_wild_draw4():
    snap = make_snapshot(
        {"a": [wild("wildDraw4"), n("red", 1)], "b": [act("red", "draw2"), n("blue", 1)]},
        top=n("red", 9),
    )
    snap = engine.play_card(snap, "a", wild("wildDraw4", color="red"))
    assert snap.room.pending_draw == 4
    assert snap.room.pending_type == "draw4"

    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "b", act("red", "draw2"))
    assert exc.value.code == "MUST_DRAW"
    assert exc.value.details["pending_type"] == "draw4"


def test_wild_draw4_stacks_on_wild_draw4():
    snap = make_snapshot(
        {"a": [wild("wildDraw4"), n("red", 1)], "b": [wild("wildDraw4"), n("blue", 1)], "c": [n("red", 2)]},
        top=n("red", 9),
    )
    snap = engine.play_card(snap, "a", wild("wildDraw4", color="blue"))
    snap = engine.play_card(snap, "b", wild("wildDraw4", color="green"))
    assert snap.room.pending_draw == 8
    assert snap.room.current_turn == "c"


def test_penalty_draw_needs_enough_cards():
    snap = make_snapshot(
        {"a": [n("red", 1)], "b": [n("blue", 1)]},
        top=act("red", "draw2"),
        pending_draw=4,
        pending_type="draw2",
    )
    snap.room.draw_pile = snap.room.draw_pile[:3]
    before = snap.model_dump()

    with pytest.raises(ResourceExhausted) as exc:
        engine.draw_one(snap, "a")
    assert exc.value.details == {"needed": 4, "available": 3}
    assert snap.model_dump() == before


# ----------------------------
# chains
# ----------------------------

def test_chain_scenario():
    snap = make_snapshot(
        {"a": [n("red", 7), n("blue", 7), n("green", 2)], "b": [n("yellow", 1)]},
        top=n("red", 3),
    )

    snap = engine.play_card(snap, "a", n("red", 7))
    assert snap.room.chain_value == 7
    assert snap.room.chain_player == "a"
    assert snap.room.current_turn == "a"

    with pytest.raises(RuleViolation) as exc:
        engine.play_card(snap, "a", n("green", 2))
    assert exc.value.code == "CHAIN_ONLY"
    assert exc.value.details["chain_value"] == 7

    snap = engine.play_card(snap, "a", n("blue", 7))
    assert snap.room.chain_value is None
    assert snap.room.chain_player is None
    assert snap.room.current_turn == "b"
    assert snap.room.top_card == n("blue", 7)


def test_chain_continues_while_value_remains():
    snap = make_snapshot(
        {"a": [n("red", 4), n("blue", 4), n("green", 4), n("yellow", 9)], "b": [n("yellow", 1)]},
        top=n("red", 3),
    )
    snap = engine.play_card(snap, "a", n("red", 4))
    snap = engine.play_card(snap, "a", n("blue", 4))
    assert snap.room.chain_value == 4
    assert snap.room.current_turn == "a"
    snap = engine.play_card(snap, "a", n("green", 4))
    assert snap.room.chain_value is None
    assert snap.room.current_turn == "b"


def test_end_turn_breaks_chain():
    snap = make_snapshot(
        {"a": [n("red", 7), n("blue", 7), n("green", 2)], "b": [n("yellow", 1)]},
        top=n("red", 3),
    )
    snap = engine.play_card(snap, "a", n("red", 7))
    snap = engine.end_turn(snap, "a")
    assert snap.room.chain_value is None
    assert snap.room.chain_player is None
    assert snap.room.current_turn == "b"


def test_voluntary_draw_breaks_chain_and_keeps_turn():
    snap = make_snapshot(
        {"a": [n("red", 7), n("blue", 7), n("green", 2)], "b": [n("yellow", 1)]},
        top=n("red", 3),
    )
    snap = engine.play_card(snap, "a", n("red", 7))
    snap = engine.draw_one(snap, "a")
    assert snap.room.chain_value is None
    assert snap.room.current_turn == "a"
    assert len(snap.hand_of("a")) == 3


# ----------------------------
# skip / reverse
# ----------------------------

def test_skip_passes_over_one_player():
    snap = make_snapshot(
        {"a": [act("red", "skip"), n("red", 1)], "b": [n("blue", 1)], "c": [n("green", 1)]},
        top=n("red", 9),
    )
    snap = engine.play_card(snap, "a", act("red", "skip"))
    assert snap.room.current_turn == "c"


def test_skip_with_two_players_returns_to_caller():
    snap = make_snapshot({"a": [act("red", "skip"), n("red", 1)], "b": [n("blue", 1)]}, top=n("red", 9))
    snap = engine.play_card(snap, "a", act("red", "skip"))
    assert snap.room.current_turn == "a"


def test_reverse_with_two_players_keeps_turn():
    snap = make_snapshot({"a": [act("red", "reverse"), n("red", 1)], "b": [n("blue", 1)]}, top=n("red", 9))
    snap = engine.play_card(snap, "a", act("red", "reverse"))
    assert snap.room.direction == -1
    assert snap.room.current_turn == "a"

    # b was skipped; a acts again and passes to b
    snap = engine.end_turn(snap, "a")
    assert snap.room.current_turn == "b"


def test_reverse_with_three_players_flips_order():
    snap = make_snapshot(
        {"a": [act("red", "reverse"), n("red", 1)], "b": [n("blue", 1)], "c": [n("green", 1)]},
        top=n("red", 9),
    )
    snap = engine.play_card(snap, "a", act("red", "reverse"))
    assert snap.room.direction == -1
    assert snap.room.current_turn == "c"

    snap = engine.end_turn(snap, "c")
    assert snap.room.current_turn == "b"


# ----------------------------
# win
# ----------------------------

def test_playing_last_card_wins_and_freezes_room():
    snap = make_snapshot({"a": [n("red", 1)], "b": [n("blue", 1), n("blue", 2)]}, top=n("red", 9))
    snap = engine.play_card(snap, "a", n("red", 1))

    assert snap.room.status == "finished"
    assert snap.room.winner_uid == "a"
    assert snap.get_player("a").hand_count == 0
    assert snap.invariant_violations() == []

    for op in (
        lambda s: engine.play_card(s, "a", n("blue", 1)),
        lambda s: engine.draw_one(s, "a"),
        lambda s: engine.end_turn(s, "a"),
    ):
        with pytest.raises(InvalidState):
            op(snap)


def test_win_on_stacked_penalty_clears_it():
    snap = make_snapshot(
        {"a": [act("blue", "draw2")], "b": [n("blue", 1)]},
        top=act("red", "draw2"),
        pending_draw=2,
        pending_type="draw2",
    )
    snap = engine.play_card(snap, "a", act("blue", "draw2"))
    assert snap.room.status == "finished"
    assert snap.room.pending_draw == 0
    assert snap.room.pending_type == "none"
    assert snap.room.chain_value is None


# ----------------------------
# draw / end turn
# ----------------------------

def test_voluntary_draw_keeps_turn_until_end_turn():
    snap = make_snapshot({"a": [n("blue", 3)], "b": [n("blue", 1)]}, top=n("red", 9))
    pile_before = len(snap.room.draw_pile)

    snap = engine.draw_one(snap, "a")
    snap = engine.draw_one(snap, "a")
    assert snap.room.current_turn == "a"
    assert len(snap.hand_of("a")) == 3
    assert snap.get_player("a").hand_count == 3
    assert len(snap.room.draw_pile) == pile_before - 2

    snap = engine.end_turn(snap, "a")
    assert snap.room.current_turn == "b"


def test_draw_from_empty_pile():
    snap = make_snapshot({"a": [n("blue", 3)], "b": [n("blue", 1)]}, top=n("red", 9))
    snap.room.draw_pile = []
    with pytest.raises(ResourceExhausted):
        engine.draw_one(snap, "a")


def test_draw_and_end_turn_require_turn():
    snap = make_snapshot({"a": [n("blue", 3)], "b": [n("blue", 1)]}, top=n("red", 9))
    with pytest.raises(TurnViolation):
        engine.draw_one(snap, "b")
    with pytest.raises(TurnViolation):
        engine.end_turn(snap, "b")


def test_end_turn_leaves_pending_penalty_for_next_player():
    snap = make_snapshot(
        {"a": [n("blue", 3)], "b": [n("blue", 1)], "c": [n("green", 1)]},
        top=act("red", "draw2"),
        pending_draw=2,
        pending_type="draw2",
    )
    snap = engine.end_turn(snap, "a")
    assert snap.room.current_turn == "b"
    assert snap.room.pending_draw == 2


# ----------------------------
# self-play
# ----------------------------

def _take_turn(snap):
    uid = snap.room.current_turn
    for card in snap.hand_of(uid):
        if is_wild(card):
            card = card.model_copy(update={"chosen_color": "red"})
        try:
            return engine.play_card(snap, uid, card)
        except RuleViolation:
            continue

    owed = snap.room.pending_draw
    snap = engine.draw_one(snap, uid)
    if owed == 0:
        snap = engine.end_turn(snap, uid)
    return snap


@pytest.mark.parametrize("seed", range(20))
def test_random_games_keep_invariants(seed):
    snap = engine.start_game(waiting_room(["a", "b", "c"]), "a", random.Random(seed))

    for _ in range(400):
        try:
            snap = _take_turn(snap)
        except ResourceExhausted:
            break
        assert snap.card_total() == 108
        assert not (snap.room.pending_draw > 0 and snap.room.chain_value is not None)
        assert snap.invariant_violations() == []
        if snap.room.status == "finished":
            assert snap.hand_of(snap.room.winner_uid) == []
            break
