"""
FastAPI WebSocket server for the expedition game.
"""

import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from .. import chat, engine
from ..constants import EVENT_STARTED
from ..errors import BAD_REQUEST, GameError
from ..lifecycle import Dispatch, SessionLifecycle
from ..models import ActionResult, Outbound, Room
from ..registry import RoomRegistry
from ..rules import GameRules, default_rules
from ..tick import TickEngine
from .events import (
    AllocateFoodEvent, AssignForagerTargetEvent, CollectResourceEvent,
    CreateRoomEvent, DanceEvent, DeliverToBaseEvent, EnterNeighborEvent,
    EventType, FarmConvertEvent, JoinRoomEvent, MarkTileEvent, MoveEvent,
    SayEvent, ScanTileEvent, StartEvent, decode_frame, encode_ack,
    encode_event, parse_inbound_event
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


class ConnectionManager:
    """Tracks open sockets by connection id and delivers encoded events."""

    def __init__(self, on_drop: Optional[Callable[[str], Awaitable[None]]] = None):
        self.connections: Dict[str, WebSocket] = {}
        self.on_drop = on_drop
        self._in_flight: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()

    def connect(self, player_id: str, websocket: WebSocket):
        self.connections[player_id] = websocket
        logger.info(f"Connection {player_id} opened")

    def disconnect(self, player_id: str) -> Optional[WebSocket]:
        self._in_flight.discard(player_id)
        websocket = self.connections.pop(player_id, None)
        if websocket is not None:
            logger.info(f"Connection {player_id} closed")
        return websocket

    async def send(self, player_id: str, payload: bytes) -> bool:
        """Reliable send; a failing socket is dropped from the manager."""
        websocket = self.connections.get(player_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(payload.decode())
            return True
        except Exception as e:
            logger.error(f"Error sending to {player_id}: {e}")
            self.disconnect(player_id)
            if self.on_drop is not None:
                await self.on_drop(player_id)
            return False

    def send_volatile(self, player_id: str, payload: bytes) -> bool:
        """
        Best-effort send for snapshots.

        Skipped when the previous snapshot for this connection is still being
        written; the next tick carries fresher state anyway.
        """
        if player_id in self._in_flight or player_id not in self.connections:
            return False
        self._in_flight.add(player_id)
        task = asyncio.create_task(self._flush_volatile(player_id, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _flush_volatile(self, player_id: str, payload: bytes):
        try:
            await self.send(player_id, payload)
        finally:
            self._in_flight.discard(player_id)


class GameServer:
    """Glue between sockets, the lifecycle manager, the arbiter and the tick loop."""

    def __init__(self, rules: GameRules = default_rules):
        self.rules = rules
        self.registry = RoomRegistry(rules)
        self.lifecycle = SessionLifecycle(self.registry)
        self.manager = ConnectionManager(on_drop=self.drop_session)
        self.ticker = TickEngine(lambda: self.registry, self.broadcast_snapshot, rules)

        self.handlers = {
            EventType.MOVE: self.handle_move,
            EventType.START: self.handle_start,
            EventType.SAY: self.handle_say,
            EventType.DANCE: self.handle_dance,
            EventType.FARM_CONVERT: self.handle_farm_convert,
            EventType.ALLOCATE_FOOD: self.handle_allocate_food,
            EventType.ENTER_NEIGHBOR: self.handle_enter_neighbor,
            EventType.SCAN_TILE: self.handle_scan_tile,
            EventType.MARK_TILE: self.handle_mark_tile,
            EventType.ASSIGN_FORAGER_TARGET: self.handle_assign_forager_target,
            EventType.COLLECT_RESOURCE: self.handle_collect_resource,
            EventType.DELIVER_TO_BASE: self.handle_deliver_to_base,
        }

    # Delivery

    def _recipients(self, room: Optional[Room], event: Outbound) -> Iterable[str]:
        if event.to is not None:
            return [event.to]
        if room is None:
            return []
        return list(room.players)

    async def deliver(self, dispatch: Dispatch):
        for code, event in dispatch:
            room = self.registry.get_room(code)
            payload = encode_event(event)
            for player_id in self._recipients(room, event):
                await self.manager.send(player_id, payload)

    async def deliver_result(self, room: Room, result: ActionResult):
        await self.deliver([(room.code, event) for event in result.events])

    async def drop_session(self, player_id: str):
        """Release the seat of a connection whose socket just failed."""
        dispatch = self.lifecycle.leave(player_id)
        if dispatch:
            logger.info(f"Dropped session {player_id} after a failed send")
        await self.deliver(dispatch)

    async def broadcast_snapshot(self, room: Room, event: Outbound):
        payload = encode_event(event)
        for player_id in room.players:
            self.manager.send_volatile(player_id, payload)

    # Connection lifecycle

    async def handle_websocket(self, websocket: WebSocket):
        player_id = uuid.uuid4().hex[:12]
        await websocket.accept()
        self.manager.connect(player_id, websocket)
        try:
            await self.manager.send(player_id, encode_event(self.lifecycle.hello(player_id)))
            while True:
                raw = await websocket.receive_text()
                await self.handle_frame(player_id, raw)
        except WebSocketDisconnect:
            logger.info(f"WebSocket {player_id} disconnected")
        except Exception as e:
            logger.error(f"WebSocket error for {player_id}: {e}")
        finally:
            self.manager.disconnect(player_id)
            await self.deliver(self.lifecycle.leave(player_id))

    async def handle_frame(self, player_id: str, raw):
        data = None
        try:
            data = decode_frame(raw)
            event = parse_inbound_event(data)
        except ValueError as e:
            logger.debug(f"Dropped frame from {player_id}: {e}")
            await self.reject_session_request(player_id, data)
            return

        try:
            if isinstance(event, CreateRoomEvent):
                await self.handle_create_room(player_id, event)
            elif isinstance(event, JoinRoomEvent):
                await self.handle_join_room(player_id, event)
            else:
                room = self.lifecycle.room_of(player_id)
                if room is None:
                    logger.debug(f"Dropped {event.type.value} from {player_id}: not in a room")
                    return
                await self.handlers[event.type](room, player_id, event)
        except Exception:
            logger.exception(f"Error handling {event.type.value} from {player_id}")

    async def reject_session_request(self, player_id: str, data):
        """createRoom and joinRoom always get an ack, even when malformed."""
        if not isinstance(data, dict):
            return
        kind = data.get("type")
        if kind in (EventType.CREATE_ROOM.value, EventType.JOIN_ROOM.value):
            await self.manager.send(player_id, encode_ack(EventType(kind), False, error=BAD_REQUEST))

    async def handle_create_room(self, player_id: str, event: CreateRoomEvent):
        room, dispatch = self.lifecycle.create_room(player_id)
        await self.manager.send(player_id, encode_ack(event.type, True, code=room.code))
        await self.deliver(dispatch)

    async def handle_join_room(self, player_id: str, event: JoinRoomEvent):
        try:
            dispatch = self.lifecycle.join(player_id, event.code)
        except GameError as e:
            logger.info(f"Join {event.code!r} by {player_id} refused: {e.code}")
            await self.manager.send(player_id, encode_ack(event.type, False, error=e.code))
            return
        room = self.lifecycle.room_of(player_id)
        await self.manager.send(player_id, encode_ack(event.type, True, code=room.code))
        await self.deliver(dispatch)

    # Intents

    async def handle_move(self, room: Room, player_id: str, event: MoveEvent):
        engine.move(room, player_id, event.model_dump())

    async def handle_start(self, room: Room, player_id: str, event: StartEvent):
        # Speed and spawn are server-owned; this only acknowledges the client's UI flow
        await self.manager.send(player_id, encode_event(Outbound(EVENT_STARTED, {"ok": True})))

    async def handle_say(self, room: Room, player_id: str, event: SayEvent):
        await self.deliver_result(room, chat.say(room, player_id, event.text))

    async def handle_dance(self, room: Room, player_id: str, event: DanceEvent):
        await self.deliver_result(room, chat.dance(room, player_id, event.on))

    async def handle_farm_convert(self, room: Room, player_id: str, event: FarmConvertEvent):
        await self.deliver_result(room, engine.farm_convert(room, player_id))

    async def handle_allocate_food(self, room: Room, player_id: str, event: AllocateFoodEvent):
        await self.deliver_result(
            room, engine.allocate_food(room, player_id, event.explorer, event.forager)
        )

    async def handle_enter_neighbor(self, room: Room, player_id: str, event: EnterNeighborEvent):
        await self.deliver_result(room, engine.enter_neighbor(room, player_id, event.dir))

    async def handle_scan_tile(self, room: Room, player_id: str, event: ScanTileEvent):
        await self.deliver_result(room, engine.scan_tile(room, player_id))

    async def handle_mark_tile(self, room: Room, player_id: str, event: MarkTileEvent):
        await self.deliver_result(
            room, engine.mark_tile(room, player_id, event.x, event.y, event.label)
        )

    async def handle_assign_forager_target(self, room: Room, player_id: str,
                                           event: AssignForagerTargetEvent):
        await self.deliver_result(
            room, engine.assign_forager_target(room, player_id, event.x, event.y)
        )

    async def handle_collect_resource(self, room: Room, player_id: str,
                                      event: CollectResourceEvent):
        await self.deliver_result(room, engine.collect_resource(room, player_id))

    async def handle_deliver_to_base(self, room: Room, player_id: str,
                                     event: DeliverToBaseEvent):
        await self.deliver_result(room, engine.deliver_to_base(room, player_id))


def list_instruction_images(static_dir: Optional[Path]) -> Tuple[str, ...]:
    if static_dir is None:
        return ()
    folder = static_dir / "instructions"
    if not folder.is_dir():
        return ()
    return tuple(
        f"/instructions/{p.name}"
        for p in sorted(folder.iterdir())
        if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
    )


def create_app(
    rules: GameRules = default_rules,
    static_dir: Optional[str] = None,
    run_ticks: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        rules: Game configuration shared by every room
        static_dir: Directory served at ``/``; defaults to ``$STATIC_DIR`` or ``public``
        run_ticks: Start the simulation loop with the app lifespan
    """
    server = GameServer(rules)
    static_path = Path(static_dir or os.getenv("STATIC_DIR", "public"))
    if not static_path.is_dir():
        static_path = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if run_ticks:
            server.ticker.start()
        yield
        await server.ticker.stop()

    app = FastAPI(title="Expedition Game Server", version="1.0.0", lifespan=lifespan)
    app.state.game = server

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        """Liveness probe used by clients waking a cold server."""
        return "ok"

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "rooms": len(server.registry),
            "connections": len(server.manager.connections),
        }

    @app.get("/api/instructions")
    async def instructions():
        return {"images": list(list_instruction_images(static_path))}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await server.handle_websocket(websocket)

    if static_path is not None:
        app.mount("/", StaticFiles(directory=str(static_path), html=True), name="static")

    return app


app = create_app()
