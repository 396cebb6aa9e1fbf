from __future__ import annotations

from typing import Sequence


def next_index(player_ids: Sequence[str], current_index: int, direction: int) -> int:
    """
    Seat that acts after `current_index` when moving in `direction` (+1 / -1).
    """
    n = len(player_ids)
    if n == 0:
        raise ValueError("Cannot resolve a turn in an empty room")
    return (current_index + direction + n) % n


def next_player(player_ids: Sequence[str], current_uid: str, direction: int, steps: int = 1) -> str:
    """Advance `steps` seats from `current_uid` and return that player's id."""
    idx = list(player_ids).index(current_uid)
    for _ in range(steps):
        idx = next_index(player_ids, idx, direction)
    return player_ids[idx]
