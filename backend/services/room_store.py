"""
Room Store — the authoritative in-memory table of live rooms.

Replaces a database for a single-process deployment: every room, and the
chat timeline that belongs to it, lives here for as long as the room has at
least one participant. Nothing survives a process restart.
"""
import logging
from typing import Dict, List, Optional

from models.room import Message, Room, new_room_id
from services.errors import RoomNotFound

logger = logging.getLogger(__name__)


class RoomStore:
    """
    Plain dict-backed store. Not thread-safe on its own; all access goes
    through the SyncEngine, which runs on the asyncio event loop.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._messages: Dict[str, List[Message]] = {}

    # ── Room CRUD ─────────────────────────────────────────────────────────────

    def add(self, room: Room) -> Room:
        """Insert a new room, re-rolling its id on the (rare) collision."""
        while room.id in self._rooms:
            room.id = new_room_id()
        self._rooms[room.id] = room
        self._messages[room.id] = []
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def require(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def delete(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)
        self._messages.pop(room_id, None)

    def list_rooms(self) -> List[Room]:
        """All live rooms, in creation order."""
        return list(self._rooms.values())

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    # ── Messages (append-only) ────────────────────────────────────────────────

    def append_message(self, room_id: str, message: Message) -> Message:
        self.require(room_id)
        self._messages[room_id].append(message)
        return message

    def get_messages(self, room_id: str, limit: Optional[int] = None) -> List[Message]:
        """Most recent *limit* messages (all when None), in creation order."""
        self.require(room_id)
        messages = self._messages[room_id]
        if limit is not None:
            if limit <= 0:
                return []
            messages = messages[-limit:]
        return list(messages)
