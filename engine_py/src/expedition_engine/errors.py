# engine_py/src/expedition_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
ROOM_FULL = "ROOM_FULL"
BAD_REQUEST = "BAD_REQUEST"


class RoomNotFound(GameError):
    def __init__(self, code: str):
        super().__init__(ROOM_NOT_FOUND, f"Room {code} not found")


class RoomFull(GameError):
    def __init__(self, code: str):
        super().__init__(ROOM_FULL, f"Room {code} is full")
