"""
Room Lifecycle Manager — pure deterministic Python, no I/O.

Responsibilities:
- Room creation (initiator becomes host)
- Join (idempotent for a participant already in the room)
- Leave (host hand-off to the earliest remaining joiner, teardown when empty)
- Transport disconnect (unbinds the connection, never leaves the room)

Every method mutates the Store in place and returns the notifications the
Broadcast Router should deliver. Nothing here sends anything itself.
"""
import logging
from typing import Any, Optional

from models.room import Participant, Phase, Room
from services import broadcast
from services.broadcast import ActionResult
from services.identity_registry import IdentityRegistry
from services.room_store import RoomStore

logger = logging.getLogger(__name__)


class RoomLifecycle:
    def __init__(self, store: RoomStore, registry: IdentityRegistry):
        self._store = store
        self._registry = registry

    def create_room(
        self,
        name: str,
        initiator_id: str,
        initiator_name: str,
        content: Optional[Any] = None,
    ) -> ActionResult:
        room = self._store.add(Room(
            name=name,
            host_id=initiator_id,
            participants=[Participant(id=initiator_id, display_name=initiator_name, is_host=True)],
            phase=Phase.WAITING,
            content=content,
        ))
        logger.info(f"[{room.id}] Room '{name}' created by {initiator_id} ({initiator_name})")
        return ActionResult(room, [
            broadcast.room_created(room),
            broadcast.room_list_updated(self._store.list_rooms()),
        ])

    def join_room(
        self, room_id: str, participant_id: str, participant_name: str
    ) -> ActionResult:
        """
        Raises RoomNotFound for an unknown room id.

        A rejoin by a current participant answers roomJoined and roomUpdated
        only. The directory did not change, so no roomListUpdated goes out.
        """
        room = self._store.require(room_id)

        if room.has_participant(participant_id):
            # Reconnect: membership is unchanged, so the directory is too.
            logger.info(f"[{room_id}] {participant_id} rejoined")
            return ActionResult(room, [
                broadcast.room_joined(room),
                broadcast.room_updated(room),
            ])

        room.participants.append(
            Participant(id=participant_id, display_name=participant_name, is_host=False)
        )
        logger.info(
            f"[{room_id}] {participant_id} ({participant_name}) joined "
            f"({len(room.participants)} participants)"
        )
        return ActionResult(room, [
            broadcast.room_joined(room),
            broadcast.room_updated(room),
            broadcast.room_list_updated(self._store.list_rooms()),
        ])

    def leave_room(self, room_id: str, participant_id: str) -> ActionResult:
        """
        Remove a participant. Raises RoomNotFound for an unknown room id.
        Leaving a room one is not in changes nothing and broadcasts nothing.
        Role assignments and votes of the leaver are kept.
        """
        room = self._store.require(room_id)
        if not room.has_participant(participant_id):
            return ActionResult(room, [])

        room.participants = [p for p in room.participants if p.id != participant_id]

        if not room.participants:
            self._store.delete(room_id)
            logger.info(f"[{room_id}] Room '{room.name}' deleted (last participant left)")
            return ActionResult(None, [
                broadcast.room_list_updated(self._store.list_rooms()),
            ])

        if room.host_id == participant_id:
            successor = room.participants[0]
            for p in room.participants:
                p.is_host = p.id == successor.id
            room.host_id = successor.id
            logger.info(f"[{room_id}] Host {participant_id} left; {successor.id} is now host")
        else:
            logger.info(f"[{room_id}] {participant_id} left")

        return ActionResult(room, [
            broadcast.room_updated(room),
            broadcast.room_list_updated(self._store.list_rooms()),
        ])

    def disconnect(self, handle: str) -> Optional[str]:
        """
        Transport lost. Unbinds the connection and returns the identity it
        spoke for. Room membership is left alone so the participant can
        reconnect and resume.
        """
        participant_id = self._registry.unbind(handle)
        if participant_id:
            logger.info(f"{participant_id} disconnected (membership kept)")
        return participant_id
