# app/domain/common/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class GameError(Exception):
    """
    Base for every rejected operation.
    Raised before any write, so the transaction that raised it commits nothing.
    Handlers turn it into an OutError with the same code/message/details.
    """
    code: str = "GAME_ERROR"
    http_status: int = 400

    def __init__(self, message: str, *, code: Optional[str] = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details: Dict[str, Any] = details


class Unauthorized(GameError):
    code = "UNAUTHORIZED"
    http_status = 401


class RoomNotFound(GameError):
    code = "ROOM_NOT_FOUND"
    http_status = 404


class InvalidState(GameError):
    code = "BAD_STATE"
    http_status = 409


class TurnViolation(GameError):
    code = "NOT_YOUR_TURN"
    http_status = 409


class RuleViolation(GameError):
    """code is one of CARD_NOT_IN_HAND, MUST_DRAW, CHAIN_ONLY, ILLEGAL_PLAY, COLOR_REQUIRED."""
    code = "ILLEGAL_PLAY"
    http_status = 422


class ResourceExhausted(GameError):
    code = "DRAW_PILE_EMPTY"
    http_status = 409


class TransientFailure(GameError):
    code = "TRY_AGAIN"
    http_status = 503


class InvariantBroken(GameError):
    code = "INVARIANT_BROKEN"
    http_status = 500


_RULE_CODES = ("CARD_NOT_IN_HAND", "MUST_DRAW", "CHAIN_ONLY", "ILLEGAL_PLAY", "COLOR_REQUIRED")


def http_status_for(code: str) -> int:
    """HTTP status for an error code, including the sub-codes set per raise."""
    if code in _RULE_CODES:
        return RuleViolation.http_status
    for cls in (Unauthorized, RoomNotFound, TurnViolation, ResourceExhausted, TransientFailure, InvariantBroken):
        if cls.code == code:
            return cls.http_status
    return InvalidState.http_status
