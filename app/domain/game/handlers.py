from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, List, Optional, Tuple

from app.domain.cards.deck import new_rng
from app.domain.cards.model import dump_card
from app.domain.common.errors import GameError
from app.domain.game import engine
from app.domain.game.state import GameSnapshot
from app.domain.game.views import build_room_view
from app.transport.protocols import (
    InDrawOne,
    InEndTurn,
    InPlayCard,
    InSnapshot,
    InStartGame,
    OutCardPlayed,
    OutCardsDrawn,
    OutError,
    OutGameOver,
    OutGameStarted,
    OutTurnChanged,
)

logger = logging.getLogger(__name__)

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


def error_event(e: GameError) -> OutError:
    return OutError(code=e.code, message=e.message, details=e.details)


def _targeted_snapshots(snap: GameSnapshot) -> List[Dict[str, Any]]:
    """One private room_snapshot per seated player, addressed by "targets"."""
    out: List[Dict[str, Any]] = []
    for p in snap.players:
        view = build_room_view(snap, viewer_pid=p.pid)
        out.append({**view.model_dump(), "targets": [p.pid]})
    return out


def _turn_event(snap: GameSnapshot) -> OutTurnChanged:
    room = snap.room
    return OutTurnChanged(
        current_turn=room.current_turn or "",
        direction=room.direction,
        pending_draw=room.pending_draw,
        chain_value=room.chain_value,
    )


async def _commit(*, app, room_code: str, pid: Optional[str], op: str, mutate) -> Tuple[Optional[GameSnapshot], Outgoing]:
    if not pid:
        return None, [OutError(code="UNAUTHORIZED", message="Missing caller identity")]

    repo = app.state.repo
    try:
        snap = await repo.run_transaction(room_code, mutate)
    except GameError as e:
        logger.info("%s rejected in room %s for %s: %s", op, room_code, pid, e.code)
        return None, [error_event(e)]
    return snap, []


async def handle_snapshot(*, app, room_code: str, pid: Optional[str], msg: InSnapshot) -> Result:
    snap = await app.state.repo.get_snapshot(room_code)
    if snap is None:
        return [OutError(code="ROOM_NOT_FOUND", message=f"Room {room_code} not found")], []
    return [build_room_view(snap, viewer_pid=pid)], []


async def handle_start_game(*, app, room_code: str, pid: Optional[str], msg: InStartGame) -> Result:
    # one seed per request: a retried transaction deals the same cards
    seed = secrets.token_hex(16)
    snap, errors = await _commit(
        app=app,
        room_code=room_code,
        pid=pid,
        op="start_game",
        mutate=lambda s: engine.start_game(s, pid, new_rng(seed)),
    )
    if snap is None:
        return errors, []

    logger.info("room %s started with %d players", room_code, len(snap.players))
    started = OutGameStarted(top_card=dump_card(snap.room.top_card), current_turn=snap.room.current_turn)
    to_sender: Outgoing = [started, build_room_view(snap, viewer_pid=pid)]
    to_room: Outgoing = [started, *_targeted_snapshots(snap)]
    return to_sender, to_room


async def handle_play_card(*, app, room_code: str, pid: Optional[str], msg: InPlayCard) -> Result:
    snap, errors = await _commit(
        app=app,
        room_code=room_code,
        pid=pid,
        op="play_card",
        mutate=lambda s: engine.play_card(s, pid, msg.card),
    )
    if snap is None:
        return errors, []

    player = snap.get_player(pid)
    events: Outgoing = [
        OutCardPlayed(by=pid, card=dump_card(msg.card), hand_count=player.hand_count if player else 0),
    ]
    if snap.room.status == "finished":
        logger.info("room %s won by %s", room_code, pid)
        events.append(OutGameOver(winner_uid=pid))
    else:
        events.append(_turn_event(snap))

    return [*events, build_room_view(snap, viewer_pid=pid)], [*events, *_targeted_snapshots(snap)]


async def handle_draw_one(*, app, room_code: str, pid: Optional[str], msg: InDrawOne) -> Result:
    snap, errors = await _commit(
        app=app,
        room_code=room_code,
        pid=pid,
        op="draw_one",
        mutate=lambda s: engine.draw_one(s, pid),
    )
    if snap is None:
        return errors, []

    player = snap.get_player(pid)
    events: Outgoing = [
        OutCardsDrawn(
            by=pid,
            hand_count=player.hand_count if player else 0,
            draw_pile_count=len(snap.room.draw_pile),
        ),
        _turn_event(snap),
    ]
    return [*events, build_room_view(snap, viewer_pid=pid)], [*events, *_targeted_snapshots(snap)]


async def handle_end_turn(*, app, room_code: str, pid: Optional[str], msg: InEndTurn) -> Result:
    snap, errors = await _commit(
        app=app,
        room_code=room_code,
        pid=pid,
        op="end_turn",
        mutate=lambda s: engine.end_turn(s, pid),
    )
    if snap is None:
        return errors, []

    event = _turn_event(snap)
    return [event, build_room_view(snap, viewer_pid=pid)], [event, *_targeted_snapshots(snap)]
