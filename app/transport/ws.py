# app/transport/ws.py
from __future__ import annotations

import uuid
import ipaddress
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.settings import get_settings
from app.transport.auth import caller_from_headers
from app.transport.dispatcher import dispatch_message
from app.transport.protocols import OutError, OutHello
from app.transport.ws_manager import Conn

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = get_settings()
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is None or origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        o = urlparse(origin)
        if _is_private_ip(o.hostname or "") and o.port == 5173:
            return True
    await websocket.close(code=1008)
    return False


@router.websocket("/ws/{room_code}")
async def ws_room(websocket: WebSocket, room_code: str):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    # identity is fixed for the life of the socket
    pid = caller_from_headers(websocket.headers)
    conn = Conn(conn_id=uuid.uuid4().hex[:10], pid=pid, ws=websocket)
    wsman = websocket.app.state.wsman
    await wsman.add(room_code, conn)
    await websocket.send_json(OutHello(pid=pid, room_code=room_code).model_dump())

    try:
        while True:
            try:
                raw = await websocket.receive_json()
            except ValueError:
                await websocket.send_json(OutError(code="BAD_MESSAGE", message="Invalid JSON").model_dump())
                continue
            if not isinstance(raw, dict):
                await websocket.send_json(OutError(code="BAD_MESSAGE", message="Expected a JSON object").model_dump())
                continue

            to_sender, to_room = await dispatch_message(
                app=websocket.app,
                room_code=room_code,
                pid=pid,
                raw=raw,
            )

            # unicast
            for e in to_sender:
                await websocket.send_json(e)

            # everyone else, including the caller's other sockets
            await wsman.publish(room_code, to_room, exclude_conn_id=conn.conn_id)

    except WebSocketDisconnect:
        return
    finally:
        await wsman.remove(room_code, conn.conn_id)
