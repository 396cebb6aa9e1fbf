from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.domain.cards.deck import DECK_SIZE
from app.domain.cards.model import Card
from app.store.models import PlayerStore, RoomStore


class GameSnapshot(BaseModel):
    """
    Everything one game transaction reads and writes: the room record,
    the roster (in turn order) and every private hand.
    """
    room_code: str
    room: RoomStore
    players: List[PlayerStore] = Field(default_factory=list)
    hands: Dict[str, List[Card]] = Field(default_factory=dict)

    def player_ids(self) -> List[str]:
        return [p.pid for p in self.players]

    def get_player(self, pid: str) -> Optional[PlayerStore]:
        for p in self.players:
            if p.pid == pid:
                return p
        return None

    def hand_of(self, pid: str) -> List[Card]:
        return self.hands.get(pid, [])

    def card_total(self) -> int:
        in_hands = sum(len(h) for h in self.hands.values())
        return len(self.room.draw_pile) + len(self.room.discard_pile) + in_hands

    def invariant_violations(self) -> List[str]:
        """Empty list when the snapshot is safe to commit."""
        room = self.room
        problems: List[str] = []

        if room.status == "waiting":
            return problems

        total = self.card_total()
        if total != DECK_SIZE:
            problems.append(f"card count is {total}, expected {DECK_SIZE}")

        if room.pending_draw > 0 and room.chain_value is not None:
            problems.append("pending draw and chain are both active")
        if (room.pending_draw > 0) != (room.pending_type != "none"):
            problems.append("pending_type does not agree with pending_draw")

        if room.current_turn not in self.player_ids():
            problems.append(f"current_turn {room.current_turn!r} is not in the room")

        if (room.winner_uid is not None) != (room.status == "finished"):
            problems.append("winner_uid must be set exactly when the room is finished")

        for p in self.players:
            if p.hand_count != len(self.hand_of(p.pid)):
                problems.append(f"hand_count of {p.pid} is stale")
        return problems
