"""
WebSocket event models and validation.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models import Outbound


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    MOVE = "move"
    START = "start"
    SAY = "say"
    DANCE = "dance"
    FARM_CONVERT = "farmConvert"
    ALLOCATE_FOOD = "allocateFood"
    ENTER_NEIGHBOR = "enterNeighbor"
    SCAN_TILE = "scanTile"
    MARK_TILE = "markTile"
    ASSIGN_FORAGER_TARGET = "assignForagerTarget"
    COLLECT_RESOURCE = "collectResource"
    DELIVER_TO_BASE = "deliverToBase"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model. Unknown extra keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    type: EventType


class CreateRoomEvent(BaseEvent):
    """Room layout is always server-seeded; a client-sent seed is ignored."""
    type: EventType = EventType.CREATE_ROOM


class JoinRoomEvent(BaseEvent):
    type: EventType = EventType.JOIN_ROOM
    code: str = Field(default="", max_length=64)

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, v):
        # Unknown shapes fall through to the registry as an unknown code
        return "" if v is None else str(v)


class MoveEvent(BaseEvent):
    """Directional flags; anything missing counts as released."""
    type: EventType = EventType.MOVE
    up: Optional[bool] = False
    down: Optional[bool] = False
    left: Optional[bool] = False
    right: Optional[bool] = False


class StartEvent(BaseEvent):
    type: EventType = EventType.START


class SayEvent(BaseEvent):
    type: EventType = EventType.SAY
    text: str = Field(default="", max_length=200)


class DanceEvent(BaseEvent):
    type: EventType = EventType.DANCE
    on: Optional[bool] = False


class FarmConvertEvent(BaseEvent):
    type: EventType = EventType.FARM_CONVERT


class AllocateFoodEvent(BaseEvent):
    type: EventType = EventType.ALLOCATE_FOOD
    explorer: int = 0
    forager: int = 0


class EnterNeighborEvent(BaseEvent):
    type: EventType = EventType.ENTER_NEIGHBOR
    dir: str = ""


class ScanTileEvent(BaseEvent):
    type: EventType = EventType.SCAN_TILE


class MarkTileEvent(BaseEvent):
    type: EventType = EventType.MARK_TILE
    x: int = 0
    y: int = 0
    label: int = 0


class AssignForagerTargetEvent(BaseEvent):
    type: EventType = EventType.ASSIGN_FORAGER_TARGET
    x: int = -1
    y: int = -1


class CollectResourceEvent(BaseEvent):
    type: EventType = EventType.COLLECT_RESOURCE


class DeliverToBaseEvent(BaseEvent):
    type: EventType = EventType.DELIVER_TO_BASE


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    MoveEvent,
    StartEvent,
    SayEvent,
    DanceEvent,
    FarmConvertEvent,
    AllocateFoodEvent,
    EnterNeighborEvent,
    ScanTileEvent,
    MarkTileEvent,
    AssignForagerTargetEvent,
    CollectResourceEvent,
    DeliverToBaseEvent,
]

EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.MOVE: MoveEvent,
    EventType.START: StartEvent,
    EventType.SAY: SayEvent,
    EventType.DANCE: DanceEvent,
    EventType.FARM_CONVERT: FarmConvertEvent,
    EventType.ALLOCATE_FOOD: AllocateFoodEvent,
    EventType.ENTER_NEIGHBOR: EnterNeighborEvent,
    EventType.SCAN_TILE: ScanTileEvent,
    EventType.MARK_TILE: MarkTileEvent,
    EventType.ASSIGN_FORAGER_TARGET: AssignForagerTargetEvent,
    EventType.COLLECT_RESOURCE: CollectResourceEvent,
    EventType.DELIVER_TO_BASE: DeliverToBaseEvent,
}


class AckEvent(BaseModel):
    """Reply to createRoom / joinRoom, the only intents that get one."""
    type: EventType
    ok: bool
    code: Optional[str] = None
    error: Optional[str] = None


def parse_inbound_event(data: Any) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Decoded JSON frame from the WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = EVENT_MAP[event_type]
    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e.error_count()} error(s) in {event_type.value}")


def encode_event(event: Outbound) -> bytes:
    """Wire form of an outbound event: ``{"type": ..., **data}``."""
    return orjson.dumps({"type": event.type, **event.data})


def encode_ack(event_type: EventType, ok: bool, code: Optional[str] = None,
               error: Optional[str] = None) -> bytes:
    ack = AckEvent(type=event_type, ok=ok, code=code, error=error)
    return orjson.dumps(ack.model_dump(mode="json", exclude_none=True))


def decode_frame(raw: Union[str, bytes]) -> Dict[str, Any]:
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON: {e}")
