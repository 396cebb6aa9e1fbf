from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from app.store.redis_keys import RK

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all rooms with a one-line game summary (debug/admin).
    """
    repo = request.app.state.repo
    r = request.app.state.redis
    wsman = request.app.state.wsman

    # Scan for room record keys: room:<code>
    cursor = 0
    room_codes = []
    while True:
        cursor, keys = await r.scan(cursor=cursor, match="room:*", count=200)
        for k in keys:
            key = k.decode("utf-8") if isinstance(k, (bytes, bytearray)) else str(k)
            if key.count(":") == 1:
                room_codes.append(key.split(":")[1])
        if cursor == 0:
            break

    rooms = []
    for code in sorted(set(room_codes)):
        snap = await repo.get_snapshot(code)
        if snap is None:
            continue
        rooms.append(
            {
                "room_code": code,
                "status": snap.room.status,
                "players": len(snap.players),
                "current_turn": snap.room.current_turn,
                "draw_pile": len(snap.room.draw_pile),
                "winner_uid": snap.room.winner_uid,
                "sockets": await wsman.room_size(code),
                "last_activity": snap.room.last_activity,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_code}/close")
async def close_room(room_code: str, request: Request):
    """
    Force close a room (debug/admin). Deletes Redis keys and closes websockets.
    """
    repo = request.app.state.repo
    r = request.app.state.redis
    wsman = request.app.state.wsman

    if not await repo.room_exists(room_code):
        raise HTTPException(status_code=404, detail="Room not found")

    await r.delete(*RK(room_code).all_room_keys())
    await wsman.close_room(room_code, code=4000)

    return {"ok": True, "room_code": room_code}
