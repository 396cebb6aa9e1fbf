# app/transport/ws_manager.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Conn:
    conn_id: str
    pid: Optional[str]          # None for anonymous viewers
    ws: WebSocket


class WSManager:
    """
    In-memory registry of live sockets: room_code -> conn_id -> Conn.
    One player may have several sockets open (tabs, reconnects).
    Transport-only: no Redis, no game rules.
    """
    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[str, Conn]] = {}
        self._lock = asyncio.Lock()

    async def add(self, room_code: str, conn: Conn) -> None:
        async with self._lock:
            self._rooms.setdefault(room_code, {})[conn.conn_id] = conn

    async def remove(self, room_code: str, conn_id: str) -> None:
        async with self._lock:
            room = self._rooms.get(room_code)
            if not room:
                return
            room.pop(conn_id, None)
            if not room:
                self._rooms.pop(room_code, None)

    async def _conns(self, room_code: str) -> List[Conn]:
        async with self._lock:
            return list(self._rooms.get(room_code, {}).values())

    async def _send(self, room_code: str, conn: Conn, event: dict) -> None:
        try:
            await conn.ws.send_json(event)
        except (RuntimeError, ConnectionError) as e:
            # dead socket; ws.py removes it when its receive loop ends
            logger.debug("room %s: send to %s failed: %s", room_code, conn.conn_id, e)

    async def send_to_pid(self, room_code: str, pid: str, event: dict, exclude_conn_id: Optional[str] = None) -> None:
        for c in await self._conns(room_code):
            if c.pid == pid and c.conn_id != exclude_conn_id:
                await self._send(room_code, c, event)

    async def broadcast(self, room_code: str, event: dict, exclude_conn_id: Optional[str] = None) -> None:
        for c in await self._conns(room_code):
            if c.conn_id == exclude_conn_id:
                continue
            await self._send(room_code, c, event)

    async def publish(self, room_code: str, events: List[dict], *, exclude_conn_id: Optional[str] = None) -> None:
        """
        Deliver handler to_room events: dicts with "targets" go only to those
        players (without the key), everything else to the whole room.
        `exclude_conn_id` is the socket that already got these as to_sender.
        """
        for e in events:
            if "targets" in e:
                payload = {k: v for k, v in e.items() if k != "targets"}
                for t in e.get("targets") or []:
                    await self.send_to_pid(room_code, t, payload, exclude_conn_id=exclude_conn_id)
                continue
            await self.broadcast(room_code, e, exclude_conn_id=exclude_conn_id)

    async def close_room(self, room_code: str, code: int = 4000) -> None:
        async with self._lock:
            conns = list(self._rooms.pop(room_code, {}).values())
        for c in conns:
            try:
                await c.ws.close(code=code)
            except RuntimeError as e:
                logger.debug("room %s: close of %s failed: %s", room_code, c.conn_id, e)

    async def room_size(self, room_code: str) -> int:
        async with self._lock:
            return len(self._rooms.get(room_code, {}))
