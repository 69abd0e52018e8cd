"""
SyncEngine — the single owner of all room state.

Wires the Room Store, Identity Registry, Lifecycle Manager, Game Master and
Broadcast Router together and exposes one synchronous entry point per inbound
action. An action is validated, applied and routed in one uninterrupted call,
so two actions can never interleave partway through a mutation.

Error policy:
  RoomNotFound             → roomNotFound to the caller only
  any other SyncError      → error{code} to the caller only
  invalid payload          → error{VALIDATION_ERROR} to the caller only
  unknown action name      → ignored
All of them leave the Store unchanged.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from agents.game_master import GameMaster
from agents.room_lifecycle import RoomLifecycle
from config import settings
from models.actions import ACTION_PAYLOADS
from models.room import Message, Room, VoteTallyResponse, WireModel
from services import broadcast
from services.broadcast import ActionResult, BroadcastRouter, Delivery, Notification
from services.errors import ActionValidationError, RoomNotFound, SyncError
from services.identity_registry import IdentityRegistry
from services.room_store import RoomStore

logger = logging.getLogger(__name__)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class SyncEngine:
    def __init__(self, max_message_length: Optional[int] = None):
        self.store = RoomStore()
        self.registry = IdentityRegistry()
        self.router = BroadcastRouter(self.store, self.registry)
        self.lifecycle = RoomLifecycle(self.store, self.registry)
        self.game_master = GameMaster(self.store)
        self.max_message_length = max_message_length or settings.max_message_length

    # ── Connections ───────────────────────────────────────────────────────────

    def connect(self, handle: str, participant_id: Optional[str] = None) -> None:
        self.router.attach(handle)
        if participant_id:
            self.registry.bind(participant_id, handle)

    def disconnect(self, handle: str) -> None:
        """Never removes anyone from a room and never notifies anyone."""
        self.lifecycle.disconnect(handle)
        self.router.detach(handle)

    # ── Actions ───────────────────────────────────────────────────────────────

    def dispatch(self, handle: Optional[str], action: str, data: Any) -> List[Delivery]:
        """Apply one inbound action and return the deliveries it produced."""
        notifications = self.apply(handle, action, data)
        return self.router.route(notifications, caller=handle)

    def apply(self, handle: Optional[str], action: str, data: Any) -> List[Notification]:
        if action == "ping":
            return [broadcast.pong()]

        payload_model = ACTION_PAYLOADS.get(action)
        if payload_model is None:
            logger.debug(f"Ignoring unknown action {action!r}")
            return []

        try:
            payload = payload_model.model_validate(data if data is not None else {})
            return self._apply(handle, action, payload).notifications
        except ValidationError as exc:
            logger.info(f"Rejected {action}: {_describe(exc)}")
            return [broadcast.error(ActionValidationError.code, _describe(exc), action)]
        except RoomNotFound as exc:
            logger.info(f"[{exc.room_id}] {action}: room not found")
            return [broadcast.room_not_found(exc.room_id)]
        except SyncError as exc:
            logger.info(f"{action} rejected ({exc.code}): {exc}")
            return [broadcast.error(exc.code, str(exc), action)]

    def _apply(self, handle: Optional[str], action: str, p: WireModel) -> ActionResult:
        if action == "connectUser":
            if handle:
                self.registry.bind(p.participant_id, handle)
            return ActionResult()

        elif action == "createRoom":
            result = self.lifecycle.create_room(
                p.name, p.participant_id, p.participant_name, p.content
            )
            self._bind(p.participant_id, handle)
            return result

        elif action == "joinRoom":
            result = self.lifecycle.join_room(p.room_id, p.participant_id, p.participant_name)
            self._bind(p.participant_id, handle)
            return result

        elif action == "leaveRoom":
            return self.lifecycle.leave_room(p.room_id, p.participant_id)

        elif action == "postMessage":
            if len(p.body) > self.max_message_length:
                raise ActionValidationError(
                    f"body: message exceeds {self.max_message_length} characters"
                )
            return self.game_master.post_message(p.room_id, p.sender_id, p.body, p.kind)

        elif action == "startGame":
            return self.game_master.start_game(p.room_id)

        elif action == "advancePhase":
            return self.game_master.advance_phase(p.room_id)

        elif action == "setScene":
            return self.game_master.set_scene(p.room_id, p.scene_id)

        elif action == "assignRole":
            return self.game_master.assign_role(p.room_id, p.participant_id, p.role_id)

        elif action == "discoverClue":
            return self.game_master.discover_clue(p.room_id, p.clue_id)

        elif action == "castVote":
            return self.game_master.cast_vote(p.room_id, p.participant_id, p.role_id)

        raise ActionValidationError(f"No handler for action {action!r}")

    def _bind(self, participant_id: str, handle: Optional[str]) -> None:
        if handle:
            self.registry.bind(participant_id, handle)

    # ── HTTP entry points ─────────────────────────────────────────────────────

    def create_room(
        self,
        name: str,
        participant_id: str,
        participant_name: str,
        content: Optional[Any] = None,
    ) -> Tuple[Room, List[Delivery]]:
        """Create a room outside any connection (no caller to answer)."""
        result = self.lifecycle.create_room(name, participant_id, participant_name, content)
        return result.room, self.router.route(result.notifications, caller=None)

    # ── Queries (point-in-time snapshots) ─────────────────────────────────────

    def list_rooms(self) -> List[Dict[str, Any]]:
        return [r.to_wire() for r in self.store.list_rooms()]

    def get_room(self, room_id: str) -> Optional[Dict[str, Any]]:
        room = self.store.get(room_id)
        return room.to_wire() if room else None

    def get_messages(self, room_id: str, limit: Optional[int] = None) -> List[Message]:
        """Raises RoomNotFound."""
        return self.store.get_messages(room_id, limit)

    def get_vote_tally(self, room_id: str) -> Dict[str, Any]:
        """Raises RoomNotFound."""
        room = self.store.require(room_id)
        return VoteTallyResponse(
            room_id=room.id,
            phase=room.phase,
            tally=room.vote_tally(),
            votes_cast=len(room.votes),
        ).to_wire()


_sync_engine: Optional[SyncEngine] = None


def get_sync_engine() -> SyncEngine:
    """Lazy process-wide singleton. Use as a FastAPI dependency:
    Depends(get_sync_engine)
    """
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = SyncEngine()
    return _sync_engine
