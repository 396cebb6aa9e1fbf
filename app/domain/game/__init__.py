from __future__ import annotations

from .handlers import (
    handle_draw_one,
    handle_end_turn,
    handle_play_card,
    handle_snapshot,
    handle_start_game,
)

__all__ = [
    "handle_draw_one",
    "handle_end_turn",
    "handle_play_card",
    "handle_snapshot",
    "handle_start_game",
]
