from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from redis.asyncio import Redis
from redis.exceptions import WatchError

from app.domain.cards.model import dump_card, parse_card
from app.domain.common.errors import InvariantBroken, RoomNotFound, TransientFailure
from app.domain.game.state import GameSnapshot
from app.store.models import PlayerStore, RoomStore
from app.store.redis_keys import RK
from app.util.timeutil import now_ts

logger = logging.getLogger(__name__)

Mutation = Callable[[GameSnapshot], GameSnapshot]


class RedisRepo:
    def __init__(self, r: Redis, room_ttl_sec: int = 3600, max_retries: int = 5):
        self.r = r
        self.room_ttl_sec = room_ttl_sec
        self.max_retries = max_retries

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/int/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    def _dec_map(self, d: dict) -> dict:
        return {self._dec(k): self._dec(v) for k, v in d.items()}

    # ----------------------------
    # Encoding
    # ----------------------------
    def _room_mapping(self, room: RoomStore) -> dict[str, str]:
        # every value is JSON so None survives as "null" and fields never need HDEL
        return {k: json.dumps(v) for k, v in room.model_dump(mode="json").items()}

    def _decode_room(self, raw: dict) -> RoomStore:
        norm = self._dec_map(raw)
        return RoomStore.model_validate({k: json.loads(v) for k, v in norm.items()})

    def _decode_players(self, raw: dict) -> list[PlayerStore]:
        players = [PlayerStore.model_validate_json(self._dec(v)) for v in raw.values()]
        # turn order: join order, pid breaks ties
        players.sort(key=lambda p: (p.joined_at, p.pid))
        return players

    def _decode_hands(self, raw: dict) -> dict[str, list]:
        out: dict[str, list] = {}
        for pid, v in self._dec_map(raw).items():
            out[pid] = [parse_card(c) for c in json.loads(v)]
        return out

    # ----------------------------
    # Helpers
    # ----------------------------
    async def refresh_room_ttl(self, room_code: str) -> None:
        pipe = self.r.pipeline()
        for k in RK(room_code).all_room_keys():
            pipe.expire(k, self.room_ttl_sec)
        await pipe.execute()

    async def room_exists(self, room_code: str) -> bool:
        return bool(await self.r.exists(RK(room_code).room()))

    # ----------------------------
    # Seeding (rooms are created and joined by the lobby service)
    # ----------------------------
    async def create_room(self, room_code: str, room: RoomStore) -> None:
        rk = RK(room_code)
        pipe = self.r.pipeline()
        pipe.delete(*rk.all_room_keys())
        pipe.hset(rk.room(), mapping=self._room_mapping(room))
        await pipe.execute()
        await self.refresh_room_ttl(room_code)

    async def add_player(self, room_code: str, player: PlayerStore) -> None:
        await self.r.hset(RK(room_code).players(), player.pid, player.model_dump_json())

    # ----------------------------
    # Snapshot
    # ----------------------------
    async def _read_snapshot(self, client: Any, room_code: str) -> Optional[GameSnapshot]:
        """`client` is the Redis connection or a pipeline in immediate (WATCH) mode."""
        rk = RK(room_code)
        room_raw = await client.hgetall(rk.room())
        if not room_raw:
            return None
        players_raw = await client.hgetall(rk.players())
        hands_raw = await client.hgetall(rk.hands())
        return GameSnapshot(
            room_code=room_code,
            room=self._decode_room(room_raw),
            players=self._decode_players(players_raw),
            hands=self._decode_hands(hands_raw),
        )

    async def get_snapshot(self, room_code: str) -> Optional[GameSnapshot]:
        return await self._read_snapshot(self.r, room_code)

    def _queue_writes(self, pipe: Any, snap: GameSnapshot) -> None:
        rk = RK(snap.room_code)
        pipe.hset(rk.room(), mapping=self._room_mapping(snap.room))
        if snap.players:
            pipe.hset(rk.players(), mapping={p.pid: p.model_dump_json() for p in snap.players})
        if snap.hands:
            pipe.hset(
                rk.hands(),
                mapping={pid: json.dumps([dump_card(c) for c in hand]) for pid, hand in snap.hands.items()},
            )
        for k in rk.all_room_keys():
            pipe.expire(k, self.room_ttl_sec)

    # ----------------------------
    # Transactions
    # ----------------------------
    async def run_transaction(self, room_code: str, mutate: Mutation) -> GameSnapshot:
        """
        Optimistic read-modify-write over the room's keys.

        WATCH the keys, read a snapshot, compute the next one with `mutate`
        and commit every record in one MULTI/EXEC. A concurrent write makes
        EXEC fail with WatchError; the whole cycle then starts over on fresh
        state, so `mutate` re-checks its preconditions each attempt.
        GameErrors raised by `mutate` propagate and nothing is written.
        """
        keys = RK(room_code).all_room_keys()
        for attempt in range(1, self.max_retries + 1):
            async with self.r.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(*keys)
                    current = await self._read_snapshot(pipe, room_code)
                    if current is None:
                        raise RoomNotFound(f"Room {room_code} not found")

                    nxt = mutate(current)
                    nxt.room.last_activity = now_ts()

                    problems = nxt.invariant_violations()
                    if problems:
                        logger.error("refusing to commit room %s: %s", room_code, "; ".join(problems))
                        raise InvariantBroken("Move would corrupt the room", problems=problems)

                    pipe.multi()
                    self._queue_writes(pipe, nxt)
                    await pipe.execute()
                    logger.debug("room %s committed on attempt %d", room_code, attempt)
                    return nxt
                except WatchError:
                    logger.info("room %s changed during transaction (attempt %d/%d)", room_code, attempt, self.max_retries)
                    continue

        logger.warning("room %s: giving up after %d conflicting attempts", room_code, self.max_retries)
        raise TransientFailure("Room is busy, please retry", attempts=self.max_retries)
