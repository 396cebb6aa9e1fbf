from __future__ import annotations

from typing import Optional

from app.domain.cards.model import dump_card
from app.domain.game.state import GameSnapshot
from app.transport.protocols import OutRoomSnapshot


def build_room_view(snap: GameSnapshot, *, viewer_pid: Optional[str] = None) -> OutRoomSnapshot:
    """
    What one player is allowed to see.
    The draw pile is reduced to a count; hands other than the viewer's are hidden.
    """
    room = snap.room.model_dump(mode="json", exclude={"draw_pile"})
    room["room_code"] = snap.room_code
    room["draw_pile_count"] = len(snap.room.draw_pile)

    hand = snap.hand_of(viewer_pid) if viewer_pid else []
    return OutRoomSnapshot(
        room=room,
        players=[p.model_dump() for p in snap.players],
        hand=[dump_card(c) for c in hand],
    )
