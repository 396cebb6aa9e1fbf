# app/transport/dispatcher.py
from __future__ import annotations

from typing import Any, Dict, List, Tuple, Optional, Union

from pydantic import ValidationError

from app.transport.protocols import (
    parse_incoming,
    OutError,
    OutgoingEvent,
    InSnapshot,
    InStartGame,
    InPlayCard,
    InDrawOne,
    InEndTurn,
)
from app.domain.game.handlers import (
    handle_snapshot,
    handle_start_game,
    handle_play_card,
    handle_draw_one,
    handle_end_turn,
)

DispatchResult = Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]
# (to_sender_events, to_room_events), each event is JSON dict

_HANDLERS = {
    InSnapshot: handle_snapshot,
    InStartGame: handle_start_game,
    InPlayCard: handle_play_card,
    InDrawOne: handle_draw_one,
    InEndTurn: handle_end_turn,
}


async def dispatch_message(
    *,
    app,
    room_code: str,
    pid: Optional[str],
    raw: Dict[str, Any],
) -> DispatchResult:
    """
    Transport layer calls this.
    - Parses + validates raw JSON
    - Routes to the matching game handler
    - Returns (to_sender, to_room) events as JSON dicts

    NOTE: This file contains NO Redis key usage and NO game rules.
    """
    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        err = OutError(code="BAD_MESSAGE", message=str(e)).model_dump()
        return [err], []

    handler = _HANDLERS.get(type(msg))
    if handler is None:
        err = OutError(code="NOT_IMPLEMENTED", message=f"Handler not implemented for type={msg.type}").model_dump()
        return [err], []

    to_sender, to_room = await handler(app=app, room_code=room_code, pid=pid, msg=msg)
    return dump_events(to_sender), dump_events(to_room)


def dump_events(events: List[Union[OutgoingEvent, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts. Targeted snapshots are already dicts.
    """
    return [e if isinstance(e, dict) else e.model_dump(mode="json") for e in events]
