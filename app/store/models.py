from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field

from app.domain.cards.model import Card
from app.domain.common.types import Direction, PendingType, RoomStatus


class PlayerStore(BaseModel):
    pid: str
    name: str
    is_host: bool = False
    hand_count: int = 0                 # mirrors len(hand) so others can see it
    joined_at: int


class RoomStore(BaseModel):
    """
    Authoritative room record. Cards are kept in play order:
    draw_pile is drawn from the tail, discard_pile grows at the tail.
    """
    status: RoomStatus = "waiting"
    code: Optional[str] = None
    host_uid: Optional[str] = None
    current_turn: Optional[str] = None
    direction: Direction = 1
    top_card: Optional[Card] = None
    draw_pile: List[Card] = Field(default_factory=list)
    discard_pile: List[Card] = Field(default_factory=list)
    pending_draw: int = Field(default=0, ge=0)
    pending_type: PendingType = "none"
    chain_value: Optional[int] = None
    chain_player: Optional[str] = None
    winner_uid: Optional[str] = None
    created_at: int = 0
    last_activity: int = 0
