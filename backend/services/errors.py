from typing import Any, Dict


class SyncError(Exception):
    """Base for action errors. Scoped to the caller; never changes state."""

    code = "SYNC_ERROR"

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class RoomNotFound(SyncError):
    code = "ROOM_NOT_FOUND"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class NoContentLoaded(SyncError):
    code = "NO_CONTENT_LOADED"

    def __init__(self, room_id: str):
        super().__init__(f"Room {room_id} has no script content loaded")
        self.room_id = room_id


class InvalidPhaseTransition(SyncError):
    code = "INVALID_PHASE_TRANSITION"


class ActionValidationError(SyncError):
    code = "VALIDATION_ERROR"
