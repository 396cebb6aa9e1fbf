from __future__ import annotations

from typing import List, Sequence

from app.domain.cards.model import (
    Card,
    NumberCard,
    cards_equal,
    describe,
    draw_penalty,
    is_reverse,
    is_skip,
    is_wild,
    matches,
    pending_type_for,
)
from app.domain.common.errors import RuleViolation
from app.domain.game.turns import next_player
from app.store.models import RoomStore

HAND_SIZE = 7
MIN_PLAYERS = 2
MAX_PLAYERS = 10


def find_in_hand(hand: Sequence[Card], card: Card) -> int:
    """Index of the first card in `hand` structurally equal to `card`, or -1."""
    for i, c in enumerate(hand):
        if cards_equal(c, card):
            return i
    return -1


def holds_value(hand: Sequence[Card], value: int) -> bool:
    return any(isinstance(c, NumberCard) and c.value == value for c in hand)


def check_play_allowed(room: RoomStore, caller_uid: str, card: Card) -> None:
    """
    Validate `card` against whichever constraint is active:
    a pending draw, then a chain, then the plain top-card match.
    Raises RuleViolation carrying what the caller has to do instead.
    """
    if room.pending_draw > 0:
        if pending_type_for(card) != room.pending_type:
            raise RuleViolation(
                f"Stack a {room.pending_type} or draw {room.pending_draw} cards",
                code="MUST_DRAW",
                amount=room.pending_draw,
                pending_type=room.pending_type,
            )
    elif room.chain_value is not None:
        if room.chain_player != caller_uid:
            raise RuleViolation(
                "Another player holds the chain",
                code="CHAIN_ONLY",
                chain_value=room.chain_value,
            )
        if not (isinstance(card, NumberCard) and card.value == room.chain_value):
            raise RuleViolation(
                f"Only a {room.chain_value} can continue the chain",
                code="CHAIN_ONLY",
                chain_value=room.chain_value,
            )
    elif not matches(room.top_card, card):
        raise RuleViolation(
            f"{describe(card)} cannot be played on {describe(room.top_card)}",
            code="ILLEGAL_PLAY",
        )

    if is_wild(card) and card.chosen_color is None:
        raise RuleViolation("Pick a colour for the wild card", code="COLOR_REQUIRED")


def clear_chain(room: RoomStore) -> None:
    room.chain_value = None
    room.chain_player = None


def clear_pending(room: RoomStore) -> None:
    room.pending_draw = 0
    room.pending_type = "none"


def resolve_after_play(
    room: RoomStore,
    player_ids: List[str],
    caller_uid: str,
    card: Card,
    hand_after: Sequence[Card],
) -> None:
    """
    Set turn, direction, pending draw and chain after `card` left a non-empty hand.
    Exactly one branch applies.
    """
    def advance(steps: int = 1) -> str:
        return next_player(player_ids, caller_uid, room.direction, steps)

    # stacking onto an open penalty
    if room.pending_draw > 0:
        room.pending_draw += draw_penalty(card)
        room.current_turn = advance()
        return

    # continuing a chain
    if room.chain_value is not None:
        if holds_value(hand_after, room.chain_value):
            room.current_turn = caller_uid
        else:
            clear_chain(room)
            room.current_turn = advance()
        return

    if is_skip(card):
        room.current_turn = advance(2)
    elif is_reverse(card):
        room.direction = -room.direction
        # heads-up: the opponent loses their turn, caller goes again
        if len(player_ids) == 2:
            room.current_turn = caller_uid
        else:
            room.current_turn = advance()
    elif draw_penalty(card):
        room.pending_draw = draw_penalty(card)
        room.pending_type = pending_type_for(card)
        room.current_turn = advance()
    elif isinstance(card, NumberCard) and holds_value(hand_after, card.value):
        room.chain_value = card.value
        room.chain_player = caller_uid
        room.current_turn = caller_uid
    else:
        room.current_turn = advance()
