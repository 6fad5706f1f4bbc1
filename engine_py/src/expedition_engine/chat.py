"""Chat bubbles and dance toggles"""

import logging
import time
from typing import Optional

from .constants import CHAT_PHRASES, EVENT_DANCE, EVENT_SAY
from .models import ActionResult, Outbound, Room

logger = logging.getLogger(__name__)


def say(room: Room, player_id: str, text, now: Optional[float] = None) -> ActionResult:
    """
    Broadcast a canned phrase.

    Only phrases from CHAT_PHRASES are relayed, at most one per
    ``rules.chat_cooldown`` seconds per sender. Everything else is dropped.
    """
    player = room.players.get(player_id)
    if player is None:
        return ActionResult.ignored()
    text = str(text or "").strip()
    if text not in CHAT_PHRASES:
        logger.debug(f"Dropped chat from {player_id}: not an allowed phrase")
        return ActionResult.ignored()

    now = time.monotonic() if now is None else now
    if player.last_say_at is not None and now - player.last_say_at < room.rules.chat_cooldown:
        logger.debug(f"Dropped chat from {player_id}: rate limited")
        return ActionResult.ignored()

    player.last_say_at = now
    return ActionResult.ok(Outbound(EVENT_SAY, {"id": player_id, "text": text}))


def dance(room: Room, player_id: str, on) -> ActionResult:
    player = room.players.get(player_id)
    if player is None:
        return ActionResult.ignored()
    on = bool(on)
    if player.dancing == on:
        return ActionResult.ignored()
    player.dancing = on
    if on:
        room.dancing.add(player_id)
    else:
        room.dancing.discard(player_id)
    return ActionResult.ok(Outbound(EVENT_DANCE, {"id": player_id, "on": on}))
