"""Session lifecycle: seating, fill-triggered match start and teardown"""

import logging
from typing import Dict, List, Optional, Tuple

from .constants import EVENT_HELLO, EVENT_JOINED, EVENT_LEFT
from .engine import start_match
from .errors import RoomFull, RoomNotFound
from .models import MatchStage, Outbound, Room
from .registry import RoomRegistry
from .serialization import hello_payload, serialize_player

logger = logging.getLogger(__name__)

# (room code, event) pairs; a connection can touch two rooms when it switches
Dispatch = List[Tuple[str, Outbound]]


class SessionLifecycle:
    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        self.player_rooms: Dict[str, str] = {}

    def room_of(self, player_id: str) -> Optional[Room]:
        code = self.player_rooms.get(player_id)
        if code is None:
            return None
        return self.registry.get_room(code)

    def hello(self, player_id: str) -> Outbound:
        room = self.room_of(player_id)
        return Outbound(
            EVENT_HELLO, hello_payload(room, player_id, self.registry.rules), to=player_id
        )

    def create_room(self, player_id: str, seed: Optional[int] = None) -> Tuple[Room, Dispatch]:
        """Create a room and seat its creator in it."""
        room = self.registry.create_room(seed)
        return room, self.join(player_id, room.code)

    def join(self, player_id: str, code) -> Dispatch:
        """
        Seat a connection in the room with ``code``.

        Raises:
            RoomNotFound, RoomFull: propagated from the registry; the
            connection keeps whatever seat it had before.
        """
        target = self.registry.get_room(code)
        current = self.room_of(player_id)
        if current is not None and target is not None and current.code == target.code:
            return [(current.code, self.hello(player_id))]

        # Validate before giving up the old seat
        if target is None:
            raise RoomNotFound(self.registry.normalize(code))
        if target.is_full:
            raise RoomFull(target.code)

        dispatch: Dispatch = []
        if current is not None:
            dispatch.extend(self.leave(player_id))

        player = self.registry.join_room(code, player_id)
        room = self.registry.get_room(code)
        self.player_rooms[player_id] = room.code

        dispatch.append((room.code, self.hello(player_id)))
        dispatch.append((room.code, Outbound(
            EVENT_JOINED, {"id": player_id, "state": serialize_player(player)}
        )))

        if room.is_full and room.stage == MatchStage.LOBBY:
            dispatch.extend((room.code, event) for event in start_match(room))
        return dispatch

    def leave(self, player_id: str) -> Dispatch:
        """Drop a connection from its room (disconnect, timeout or room switch)."""
        code = self.player_rooms.pop(player_id, None)
        if code is None:
            return []
        room = self.registry.get_room(code)
        player = self.registry.leave_room(code, player_id)
        if player is None or room is None or code not in self.registry:
            return []

        if room.stage != MatchStage.LOBBY and not room.is_full:
            logger.info(f"Room {room.code} dropped to {len(room.players)} players, back to lobby")
            room.stage = MatchStage.LOBBY
            room.ready_to_convert.clear()
        return [(room.code, Outbound(EVENT_LEFT, {"id": player_id}))]
