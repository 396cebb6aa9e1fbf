# app/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.domain.cards.model import Card
from app.domain.common.types import RoomStatus


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    type: str


class InSnapshot(InBase):
    type: Literal["snapshot"] = "snapshot"


class InStartGame(InBase):
    type: Literal["start_game"] = "start_game"


class InPlayCard(InBase):
    """
    Wild cards must carry chosen_color, e.g.
    {"type": "play_card", "card": {"kind": "wild", "action": "wild", "chosen_color": "red"}}
    """
    type: Literal["play_card"] = "play_card"
    card: Card


class InDrawOne(InBase):
    type: Literal["draw_one"] = "draw_one"


class InEndTurn(InBase):
    type: Literal["end_turn"] = "end_turn"


IncomingMessage = Union[
    InSnapshot,
    InStartGame,
    InPlayCard,
    InDrawOne,
    InEndTurn,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    pid: Optional[str] = None
    room_code: str


class OutRoomSnapshot(OutBase):
    """
    Per-viewer view of a room: public room fields, the roster with
    hand counts, and only the viewer's own hand.
    """
    type: Literal["room_snapshot"] = "room_snapshot"
    room: Dict[str, Any]
    players: List[Dict[str, Any]]
    hand: List[Dict[str, Any]] = Field(default_factory=list)


class OutGameStarted(OutBase):
    type: Literal["game_started"] = "game_started"
    top_card: Dict[str, Any]
    current_turn: str


class OutCardPlayed(OutBase):
    type: Literal["card_played"] = "card_played"
    by: str
    card: Dict[str, Any]
    hand_count: int


class OutCardsDrawn(OutBase):
    type: Literal["cards_drawn"] = "cards_drawn"
    by: str
    hand_count: int
    draw_pile_count: int


class OutTurnChanged(OutBase):
    type: Literal["turn_changed"] = "turn_changed"
    current_turn: str
    direction: int
    pending_draw: int = 0
    chain_value: Optional[int] = None


class OutGameOver(OutBase):
    type: Literal["game_over"] = "game_over"
    status: RoomStatus = "finished"
    winner_uid: str


OutgoingEvent = Union[
    OutError,
    OutHello,
    OutRoomSnapshot,
    OutGameStarted,
    OutCardPlayed,
    OutCardsDrawn,
    OutTurnChanged,
    OutGameOver,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "snapshot": InSnapshot,
    "start_game": InStartGame,
    "play_card": InPlayCard,
    "draw_one": InDrawOne,
    "end_turn": InEndTurn,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValueError for a missing/unknown type and ValidationError
    (a ValueError subclass) for a bad payload.
    """
    t = payload.get("type")
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
