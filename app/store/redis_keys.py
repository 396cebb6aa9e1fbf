from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RK:
    """
    Redis key builder for room-scoped keys.
    All three records are read and written inside one WATCH/MULTI transaction.
    """
    room_code: str

    def room(self) -> str:
        return f"room:{self.room_code}"  # HASH field -> JSON value

    def players(self) -> str:
        return f"room:{self.room_code}:players"  # HASH pid -> PlayerStore JSON

    def hands(self) -> str:
        return f"room:{self.room_code}:hands"  # HASH pid -> JSON list of cards

    def all_room_keys(self) -> list[str]:
        """Keys watched by every game transaction and sharing one TTL."""
        return [self.room(), self.players(), self.hands()]
