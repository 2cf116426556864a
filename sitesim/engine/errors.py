"""Engine exceptions. No web framework imports here; see core/errors.py for the HTTP mapping."""

from __future__ import annotations


class GameError(Exception):
    def __init__(self, code: str, message: str, status: int = 400, details: dict | None = None):
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}
        super().__init__(message)


class RejectedAction(GameError):
    """A player action that is not allowed right now. State is left untouched."""

    def __init__(self, message: str, code: str = "REJECTED_ACTION", details: dict | None = None):
        super().__init__(code, message, 409, details)


class RoomNotFound(GameError):
    def __init__(self, room_code: str):
        super().__init__("ROOM_NOT_FOUND", "Room not found", 404, {"room_code": room_code})


class DataIntegrityError(GameError):
    """Static data is missing or malformed. Fatal to the triggering action."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("DATA_INTEGRITY", message, 500, details)
