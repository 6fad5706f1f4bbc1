"""Game constants and small geometry helpers"""

from typing import Tuple

# Room codes skip characters that are easy to misread (I/1, O/0)
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6

SEAT_COLORS = ["#3b82f6", "#10b981", "#f59e0b"]

# Roles
ROLE_LEADER = "leader"
ROLE_EXPLORER = "explorer"
ROLE_FORAGER = "forager"
ROLES = [ROLE_LEADER, ROLE_EXPLORER, ROLE_FORAGER]

# Tile ratings used by markTile
LABEL_NONE = 0
LABEL_POOR = 1
LABEL_MEDIUM = 2
LABEL_RICH = 3

MIN_RICHNESS = 1
MAX_RICHNESS = 5
RICHNESS_UNITS = 10  # remaining = richness * RICHNESS_UNITS
MAX_POINTS_PER_TILE = 3
POINT_EDGE_MARGIN = 60

DIRECTIONS = {
    "up": (0, -1),
    "down": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
}

CHAT_PHRASES = ("Hi", "Jerry is the best")

# Outbound event names
EVENT_HELLO = "hello"
EVENT_JOINED = "joined"
EVENT_LEFT = "left"
EVENT_STATE = "state"
EVENT_SAY = "say"
EVENT_DANCE = "dance"
EVENT_STARTED = "started"
EVENT_MATCH_STARTED = "matchStarted"
EVENT_CELEBRATE_START = "celebrateStart"
EVENT_LOST = "lost"
EVENT_RESOURCES = "resources"
EVENT_TILE_UPDATE = "tileUpdate"
EVENT_TILE_DATA = "tileData"
EVENT_TILE_DATA_UPDATE = "tileDataUpdate"
EVENT_LABELS_SHARED = "labelsShared"
EVENT_LABELS_UPDATE = "labelsUpdate"
EVENT_FORAGER_TARGET = "foragerTarget"
EVENT_MAP_SHARED = "mapShared"
EVENT_MATCH_ENDED = "matchEnded"

CELEBRATION_MESSAGE = "Supplies delivered! The expedition is a success."
LOST_MESSAGE = "The forager is stranded without food. Starting a new expedition."


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def manhattan(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])
