"""Shared fixtures for the expedition engine tests."""

import random

import pytest

from expedition_engine.lifecycle import SessionLifecycle
from expedition_engine.registry import RoomRegistry
from expedition_engine.rules import create_rules


@pytest.fixture
def rules():
    return create_rules()


@pytest.fixture
def registry(rules):
    return RoomRegistry(rules, rng=random.Random(7))


@pytest.fixture
def lifecycle(registry):
    return SessionLifecycle(registry)


@pytest.fixture
def full_room(lifecycle):
    """A room with three seated players and an active match."""
    room, _ = lifecycle.create_room("p1", seed=42)
    lifecycle.join("p2", room.code)
    lifecycle.join("p3", room.code)
    return room
