"""Tests for canned chat and dance toggles"""

from expedition_engine import chat
from expedition_engine.constants import EVENT_DANCE, EVENT_SAY


def test_allowed_phrase_is_broadcast(full_room):
    result = chat.say(full_room, "p1", "Hi", now=10.0)
    assert result
    event = result.events[0]
    assert event.type == EVENT_SAY
    assert event.to is None
    assert event.data == {"id": "p1", "text": "Hi"}


def test_free_text_is_dropped(full_room):
    assert not chat.say(full_room, "p1", "hello there", now=10.0)
    assert not chat.say(full_room, "p1", None, now=10.0)
    # A dropped message does not start the cooldown
    assert chat.say(full_room, "p1", "Jerry is the best", now=10.1)


def test_chat_rate_limit(full_room):
    assert chat.say(full_room, "p1", "Hi", now=10.0)
    assert not chat.say(full_room, "p1", "Hi", now=10.3)
    # Other players have their own cooldown
    assert chat.say(full_room, "p2", "Hi", now=10.3)
    assert chat.say(full_room, "p1", "Hi", now=10.5)


def test_chat_from_stranger(full_room):
    assert not chat.say(full_room, "ghost", "Hi", now=1.0)


def test_dance_toggle(full_room):
    result = chat.dance(full_room, "p2", True)
    assert result.events[0].type == EVENT_DANCE
    assert result.events[0].data == {"id": "p2", "on": True}
    assert full_room.dancing == {"p2"}

    assert not chat.dance(full_room, "p2", True)

    result = chat.dance(full_room, "p2", False)
    assert result.events[0].data["on"] is False
    assert full_room.dancing == set()
