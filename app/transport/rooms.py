from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request

from app.domain.common.errors import http_status_for
from app.domain.game.handlers import (
    handle_draw_one,
    handle_end_turn,
    handle_play_card,
    handle_snapshot,
    handle_start_game,
)
from app.transport.auth import caller_from_headers
from app.transport.dispatcher import dump_events
from app.transport.protocols import InDrawOne, InEndTurn, InPlayCard, InSnapshot, InStartGame, OutError

router = APIRouter(prefix="/rooms", tags=["rooms"])

async def _respond(request: Request, room_code: str, pid, handler, msg) -> Dict[str, Any]:
    """
    Run a game handler synchronously for an HTTP caller.
    Errors become HTTPExceptions; room events still reach WebSocket listeners.
    """
    to_sender, to_room = await handler(app=request.app, room_code=room_code, pid=pid, msg=msg)

    for e in to_sender:
        if isinstance(e, OutError):
            raise HTTPException(
                status_code=http_status_for(e.code),
                detail={"code": e.code, "message": e.message, **e.details},
            )

    wsman = request.app.state.wsman
    # the caller's own sockets get the room events too
    await wsman.publish(room_code, dump_events(to_room))

    return {"ok": True, "events": dump_events(to_sender)}


@router.get("/{room_code}")
async def read_room(room_code: str, request: Request):
    pid = caller_from_headers(request.headers)
    to_sender, _ = await handle_snapshot(app=request.app, room_code=room_code, pid=pid, msg=InSnapshot())
    snap = to_sender[0]
    if isinstance(snap, OutError):
        raise HTTPException(status_code=404, detail="Room not found")
    return snap.model_dump(mode="json")


@router.post("/{room_code}/start")
async def start_game(room_code: str, request: Request):
    pid = caller_from_headers(request.headers)
    return await _respond(request, room_code, pid, handle_start_game, InStartGame())


@router.post("/{room_code}/play")
async def play_card(room_code: str, body: InPlayCard, request: Request):
    pid = caller_from_headers(request.headers)
    return await _respond(request, room_code, pid, handle_play_card, body)


@router.post("/{room_code}/draw")
async def draw_one(room_code: str, request: Request):
    pid = caller_from_headers(request.headers)
    return await _respond(request, room_code, pid, handle_draw_one, InDrawOne())


@router.post("/{room_code}/end-turn")
async def end_turn(room_code: str, request: Request):
    pid = caller_from_headers(request.headers)
    return await _respond(request, room_code, pid, handle_end_turn, InEndTurn())
