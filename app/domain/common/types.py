# app/domain/common/types.py
from __future__ import annotations

from typing import Literal

RoomStatus = Literal["waiting", "playing", "finished"]
PendingType = Literal["none", "draw2", "draw4"]
Direction = Literal[1, -1]
