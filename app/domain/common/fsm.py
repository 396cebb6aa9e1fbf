# app/domain/common/fsm.py
from __future__ import annotations

from app.domain.common.types import RoomStatus


def can_transition_to(current: RoomStatus, target: RoomStatus) -> bool:
    """
    Validate room status transitions. Status only moves forward.
    """
    transitions: dict[RoomStatus, list[RoomStatus]] = {
        "waiting": ["playing"],
        "playing": ["finished"],
        "finished": [],
    }
    return target in transitions.get(current, [])
