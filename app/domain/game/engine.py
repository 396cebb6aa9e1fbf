"""
Pure room state machine.

Each operation takes the current GameSnapshot and returns the next one, or
raises a GameError before touching anything. The input is never mutated, so
the same call can be replayed against a re-read snapshot when the store
reports a conflicting write.
"""
from __future__ import annotations

import random
from typing import Optional

from app.domain.cards.deck import build_deck, shuffle
from app.domain.cards.model import Card, is_wild
from app.domain.common.errors import (
    InvalidState,
    ResourceExhausted,
    RuleViolation,
    TurnViolation,
    Unauthorized,
)
from app.domain.common.fsm import can_transition_to
from app.domain.game.rules import (
    HAND_SIZE,
    MAX_PLAYERS,
    MIN_PLAYERS,
    check_play_allowed,
    clear_chain,
    clear_pending,
    find_in_hand,
    resolve_after_play,
)
from app.domain.game.state import GameSnapshot
from app.domain.game.turns import next_player
from app.store.models import RoomStore


def _require_caller(caller_uid: Optional[str]) -> str:
    if not caller_uid:
        raise Unauthorized("Sign in to play")
    return caller_uid


def _require_playing(room: RoomStore) -> None:
    if room.status != "playing":
        raise InvalidState(f"Game is not in progress (status={room.status})", status=room.status)


def _require_turn(room: RoomStore, caller_uid: str) -> None:
    if room.current_turn != caller_uid:
        raise TurnViolation("It is not your turn", current_turn=room.current_turn)


def _sync_hand_count(snap: GameSnapshot, pid: str) -> None:
    player = snap.get_player(pid)
    if player is not None:
        player.hand_count = len(snap.hand_of(pid))


def start_game(snapshot: GameSnapshot, caller_uid: Optional[str], rng: random.Random) -> GameSnapshot:
    """
    Shuffle, deal HAND_SIZE cards to each player in roster order and flip the
    first non-wild card. Wilds flipped on the way go back under the pile.
    """
    _require_caller(caller_uid)
    nxt = snapshot.model_copy(deep=True)
    room = nxt.room

    if not can_transition_to(room.status, "playing"):
        raise InvalidState(f"Cannot start a game in status {room.status}", status=room.status)

    n = len(nxt.players)
    if n < MIN_PLAYERS:
        raise InvalidState(
            f"At least {MIN_PLAYERS} players are needed to start",
            code="NOT_ENOUGH_PLAYERS",
            players=n,
        )
    if n > MAX_PLAYERS:
        raise InvalidState(
            f"At most {MAX_PLAYERS} players can play",
            code="TOO_MANY_PLAYERS",
            players=n,
        )

    pile = shuffle(build_deck(), rng)
    nxt.hands = {}
    for p in nxt.players:
        nxt.hands[p.pid] = [pile.pop() for _ in range(HAND_SIZE)]
        p.hand_count = HAND_SIZE

    top = pile.pop()
    while is_wild(top):
        pile.insert(0, top)
        top = pile.pop()

    room.status = "playing"
    room.top_card = top
    room.draw_pile = pile
    room.discard_pile = [top]
    room.current_turn = nxt.players[0].pid
    room.direction = 1
    room.winner_uid = None
    clear_pending(room)
    clear_chain(room)
    return nxt


def play_card(snapshot: GameSnapshot, caller_uid: Optional[str], card: Card) -> GameSnapshot:
    caller_uid = _require_caller(caller_uid)
    nxt = snapshot.model_copy(deep=True)
    room = nxt.room

    _require_playing(room)
    _require_turn(room, caller_uid)

    hand = nxt.hands.setdefault(caller_uid, [])
    idx = find_in_hand(hand, card)
    if idx < 0:
        raise RuleViolation("That card is not in your hand", code="CARD_NOT_IN_HAND")

    check_play_allowed(room, caller_uid, card)

    hand.pop(idx)
    room.discard_pile.append(card)
    room.top_card = card
    _sync_hand_count(nxt, caller_uid)

    if not hand:
        room.status = "finished"
        room.winner_uid = caller_uid
        clear_pending(room)
        clear_chain(room)
        return nxt

    resolve_after_play(room, nxt.player_ids(), caller_uid, card, hand)
    return nxt


def draw_one(snapshot: GameSnapshot, caller_uid: Optional[str]) -> GameSnapshot:
    """
    With a penalty pending the caller takes all of it and the turn moves on.
    Otherwise the caller takes one card and keeps the turn.
    """
    caller_uid = _require_caller(caller_uid)
    nxt = snapshot.model_copy(deep=True)
    room = nxt.room

    _require_playing(room)
    _require_turn(room, caller_uid)

    hand = nxt.hands.setdefault(caller_uid, [])
    pile = room.draw_pile

    if room.pending_draw > 0:
        owed = room.pending_draw
        if len(pile) < owed:
            raise ResourceExhausted(
                f"Draw pile has {len(pile)} cards, {owed} are owed",
                needed=owed,
                available=len(pile),
            )
        hand.extend(pile.pop() for _ in range(owed))
        clear_pending(room)
        clear_chain(room)
        room.current_turn = next_player(nxt.player_ids(), caller_uid, room.direction)
    else:
        if not pile:
            raise ResourceExhausted("Draw pile is empty", needed=1, available=0)
        hand.append(pile.pop())
        clear_chain(room)

    _sync_hand_count(nxt, caller_uid)
    return nxt


def end_turn(snapshot: GameSnapshot, caller_uid: Optional[str]) -> GameSnapshot:
    caller_uid = _require_caller(caller_uid)
    nxt = snapshot.model_copy(deep=True)
    room = nxt.room

    _require_playing(room)
    _require_turn(room, caller_uid)

    clear_chain(room)
    room.current_turn = next_player(nxt.player_ids(), caller_uid, room.direction)
    return nxt
