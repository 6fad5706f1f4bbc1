"""Room registry: owns every live room, keyed by join code"""

import logging
import random
from typing import Callable, Dict, Iterator, List, Optional

from .constants import CODE_ALPHABET, CODE_LENGTH, SEAT_COLORS
from .errors import RoomFull, RoomNotFound
from .grid import generate_grid
from .models import PlayerSession, Room
from .rules import GameRules, default_rules

logger = logging.getLogger(__name__)

RoomHook = Callable[[Room], None]


class RoomRegistry:
    def __init__(self, rules: GameRules = default_rules, rng: Optional[random.Random] = None):
        self.rules = rules
        self.rooms: Dict[str, Room] = {}
        self._rng = rng or random.SystemRandom()
        self._on_created: List[RoomHook] = []
        self._on_destroyed: List[RoomHook] = []

    def __len__(self) -> int:
        return len(self.rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self.rooms.values()))

    def __contains__(self, code: str) -> bool:
        return self.normalize(code) in self.rooms

    # Lifecycle hooks

    def on_created(self, hook: RoomHook) -> RoomHook:
        self._on_created.append(hook)
        return hook

    def on_destroyed(self, hook: RoomHook) -> RoomHook:
        self._on_destroyed.append(hook)
        return hook

    @staticmethod
    def normalize(code) -> str:
        return str(code or "").strip().upper()

    def _new_code(self) -> str:
        while True:
            code = "".join(self._rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            if code not in self.rooms:
                return code

    def create_room(self, seed: Optional[int] = None) -> Room:
        """Allocate an empty room under a fresh unique code."""
        code = self._new_code()
        rng = random.Random(seed)
        room = Room(
            code=code,
            grid=generate_grid(self.rules, rng),
            rules=self.rules,
            rng=rng,
        )
        self.rooms[code] = room
        logger.info(f"Room {code} created")
        for hook in self._on_created:
            hook(room)
        return room

    def get_room(self, code) -> Optional[Room]:
        return self.rooms.get(self.normalize(code))

    def join_room(self, code, player_id: str) -> PlayerSession:
        """
        Seat ``player_id`` in the room.

        Raises:
            RoomNotFound: unknown code
            RoomFull: every seat is taken
        """
        room = self.get_room(code)
        if room is None:
            raise RoomNotFound(self.normalize(code))
        if player_id in room.players:
            return room.players[player_id]
        if room.is_full:
            raise RoomFull(room.code)

        taken = {p.seat for p in room.players.values()}
        seat = next(i for i in range(self.rules.max_players) if i not in taken)
        cx, cy = self.rules.base_point
        player = PlayerSession(
            id=player_id,
            seat=seat,
            name=f"P{seat + 1}",
            color=SEAT_COLORS[seat % len(SEAT_COLORS)],
            x=cx,
            y=cy,
            speed=self.rules.player_speed,
            tile=tuple(room.grid.start),
        )
        room.players[player_id] = player
        logger.info(f"Player {player_id} took seat {seat} in room {room.code}")
        return player

    def leave_room(self, code, player_id: str) -> Optional[PlayerSession]:
        """Remove a player; an emptied room is discarded."""
        room = self.get_room(code)
        if room is None:
            return None
        player = room.players.pop(player_id, None)
        room.dancing.discard(player_id)
        room.ready_to_convert.discard(player_id)
        if player is not None:
            logger.info(f"Player {player_id} left room {room.code}")
        if not room.players:
            self.destroy_room(room.code)
        return player

    def destroy_room(self, code) -> None:
        room = self.rooms.pop(self.normalize(code), None)
        if room is None:
            return
        logger.info(f"Room {room.code} destroyed")
        for hook in self._on_destroyed:
            hook(room)
