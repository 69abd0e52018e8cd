"""
Broadcast Router — turns notifications into per-connection deliveries.

Scopes:
  caller  — only the connection that sent the action
  room    — every connection currently bound to a participant of the room
  global  — every live connection on the server (room directory only)

Room audiences are recomputed from the Store and the Identity Registry every
time a notification is routed; nothing about membership is cached here.
Room-scope payloads always carry the full Room value, never a diff.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.room import Message, Room
from services.identity_registry import IdentityRegistry
from services.room_store import RoomStore

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    CALLER = "caller"
    ROOM = "room"
    GLOBAL = "global"


@dataclass(frozen=True)
class Notification:
    scope: Scope
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    room_id: Optional[str] = None

    def envelope(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data}


@dataclass(frozen=True)
class Delivery:
    handle: str
    message: Dict[str, Any]


@dataclass
class ActionResult:
    """What an applied action produced: the room it touched and what to send."""

    room: Optional[Room] = None
    notifications: List[Notification] = field(default_factory=list)


# ── Notification builders ─────────────────────────────────────────────────────
# Payloads are snapshotted at build time so a later mutation can never leak
# into an earlier notification.

def room_created(room: Room) -> Notification:
    return Notification(Scope.CALLER, "roomCreated", room.to_wire(), room.id)


def room_joined(room: Room) -> Notification:
    return Notification(Scope.CALLER, "roomJoined", room.to_wire(), room.id)


def room_not_found(room_id: str) -> Notification:
    return Notification(Scope.CALLER, "roomNotFound", {"roomId": room_id}, room_id)


def room_updated(room: Room) -> Notification:
    return Notification(Scope.ROOM, "roomUpdated", room.to_wire(), room.id)


def room_list_updated(rooms: List[Room]) -> Notification:
    return Notification(
        Scope.GLOBAL, "roomListUpdated", {"rooms": [r.to_wire() for r in rooms]}
    )


def message_posted(room_id: str, message: Message) -> Notification:
    return Notification(Scope.ROOM, "messagePosted", message.to_wire(), room_id)


def error(code: str, message: str, action: Optional[str] = None) -> Notification:
    data: Dict[str, Any] = {"code": code, "message": message}
    if action:
        data["action"] = action
    return Notification(Scope.CALLER, "error", data)


def pong() -> Notification:
    return Notification(Scope.CALLER, "pong")


class BroadcastRouter:
    def __init__(self, store: RoomStore, registry: IdentityRegistry):
        self._store = store
        self._registry = registry
        # Ordered set of live handles (dict preserves attach order).
        self._connections: Dict[str, None] = {}

    # ── Connection tracking (global audience) ────────────────────────────────

    def attach(self, handle: str) -> None:
        self._connections[handle] = None

    def detach(self, handle: str) -> None:
        self._connections.pop(handle, None)

    # ── Audience resolution ──────────────────────────────────────────────────

    def room_audience(self, room_id: str) -> List[str]:
        """Live handles bound to participants of *room_id*, in join order."""
        room = self._store.get(room_id)
        if room is None:
            return []
        handles: List[str] = []
        for participant_id in room.participant_ids():
            handle = self._registry.handle_for(participant_id)
            if handle and handle in self._connections and handle not in handles:
                handles.append(handle)
        return handles

    def audience(self, notification: Notification, caller: Optional[str]) -> List[str]:
        if notification.scope == Scope.CALLER:
            return [caller] if caller else []
        if notification.scope == Scope.ROOM:
            return self.room_audience(notification.room_id) if notification.room_id else []
        return list(self._connections)

    def route(
        self, notifications: List[Notification], caller: Optional[str] = None
    ) -> List[Delivery]:
        """Resolve every notification, in order, to concrete deliveries."""
        deliveries: List[Delivery] = []
        for n in notifications:
            handles = self.audience(n, caller)
            logger.debug(
                f"[{n.room_id or '-'}] {n.type} → {len(handles)} connection(s) "
                f"({n.scope.value})"
            )
            message = n.envelope()
            deliveries.extend(Delivery(h, message) for h in handles)
        return deliveries
