"""Fixed-rate simulation tick: integrates motion and publishes snapshots"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Iterable, Optional

from .constants import EVENT_STATE, clamp
from .models import Outbound, Room
from .rules import GameRules, default_rules
from .serialization import lite_snapshot

logger = logging.getLogger(__name__)

SnapshotSink = Callable[[Room, Outbound], Awaitable[None]]


def integrate(room: Room, dt: float) -> None:
    """Advance every player in the room by ``dt`` seconds and clamp to the map."""
    lo = room.rules.player_radius
    hi = room.rules.map_size - room.rules.player_radius
    for player in room.players.values():
        player.x = clamp(player.x + player.vx * player.speed * dt, lo, hi)
        player.y = clamp(player.y + player.vy * player.speed * dt, lo, hi)


def snapshot_event(room: Room) -> Outbound:
    return Outbound(EVENT_STATE, {"players": lite_snapshot(room)})


class TickEngine:
    def __init__(
        self,
        rooms: Callable[[], Iterable[Room]],
        sink: SnapshotSink,
        rules: GameRules = default_rules,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rooms = rooms
        self.sink = sink
        self.rules = rules
        self.clock = clock
        self.ticks = 0
        self._last: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    def next_dt(self) -> float:
        """Wall-clock delta since the previous tick, capped after stalls."""
        now = self.clock()
        if self._last is None:
            self._last = now
            return 0.0
        dt = max(0.0, now - self._last)
        self._last = now
        return min(dt, self.rules.max_tick_dt)

    async def step(self) -> Dict[str, int]:
        dt = self.next_dt()
        counts = {}
        for room in list(self.rooms()):
            integrate(room, dt)
            await self.sink(room, snapshot_event(room))
            counts[room.code] = len(room.players)
        self.ticks += 1
        return counts

    async def run(self) -> None:
        interval = self.rules.tick_interval
        logger.info(f"Tick loop running at {self.rules.tick_hz} Hz")
        try:
            while True:
                started = self.clock()
                try:
                    await self.step()
                except Exception:
                    logger.exception("Tick failed")
                elapsed = self.clock() - started
                await asyncio.sleep(max(0.0, interval - elapsed))
        except asyncio.CancelledError:
            logger.info(f"Tick loop stopped after {self.ticks} ticks")
            raise

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
