"""
Game Master — pure deterministic Python, no LLM.

Responsibilities:
- Phase transitions (Waiting → Reading → Investigation → Discussion → Voting → Ending)
- Role assignment, clue discovery, voting
- The shared chat timeline

Phases only move forward, one step at a time. Past the initial start, when to
advance is the host's call; this class only enforces the order.

Role assignment and votes are last-write-wins with no uniqueness or
membership checks: two participants may hold the same role, and a vote may be
recorded for someone who has already left.
"""
import logging

from models.room import Message, MessageKind, PHASE_ORDER, Phase, Room
from services import broadcast
from services.broadcast import ActionResult
from services.errors import InvalidPhaseTransition, NoContentLoaded
from services.room_store import RoomStore

logger = logging.getLogger(__name__)


class GameMaster:
    def __init__(self, store: RoomStore):
        self._store = store

    # ── Phase transitions ─────────────────────────────────────────────────────

    def start_game(self, room_id: str) -> ActionResult:
        """WAITING → READING. Requires script content to be loaded."""
        room = self._store.require(room_id)
        if room.phase != Phase.WAITING:
            raise InvalidPhaseTransition(
                f"Room {room_id} already started (phase {room.phase.value})"
            )
        if room.content is None:
            raise NoContentLoaded(room_id)
        return self._set_phase(room, Phase.READING)

    def advance_phase(self, room_id: str) -> ActionResult:
        """Move exactly one step forward. From WAITING this is start_game."""
        room = self._store.require(room_id)
        if room.phase == Phase.WAITING:
            return self.start_game(room_id)
        idx = PHASE_ORDER.index(room.phase)
        if idx == len(PHASE_ORDER) - 1:
            raise InvalidPhaseTransition(f"Room {room_id} has already ended")
        return self._set_phase(room, PHASE_ORDER[idx + 1])

    def _set_phase(self, room: Room, phase: Phase) -> ActionResult:
        previous = room.phase
        room.phase = phase
        logger.info(f"[{room.id}] Phase: {previous.value} → {phase.value}")
        return ActionResult(room, [broadcast.room_updated(room)])

    # ── Scene ─────────────────────────────────────────────────────────────────

    def set_scene(self, room_id: str, scene_id: str) -> ActionResult:
        room = self._store.require(room_id)
        room.active_scene_id = scene_id
        logger.info(f"[{room_id}] Active scene → {scene_id}")
        return ActionResult(room, [broadcast.room_updated(room)])

    # ── Gameplay mutations ────────────────────────────────────────────────────

    def assign_role(self, room_id: str, participant_id: str, role_id: str) -> ActionResult:
        room = self._store.require(room_id)
        room.role_assignments[participant_id] = role_id
        logger.info(f"[{room_id}] {participant_id} assigned role {role_id}")
        return ActionResult(room, [broadcast.room_updated(room)])

    def discover_clue(self, room_id: str, clue_id: str) -> ActionResult:
        """Idempotent. Only a first discovery is broadcast."""
        room = self._store.require(room_id)
        if clue_id in room.discovered_clue_ids:
            logger.debug(f"[{room_id}] Clue {clue_id} already discovered")
            return ActionResult(room, [])
        room.discovered_clue_ids.append(clue_id)
        logger.info(
            f"[{room_id}] Clue discovered: {clue_id} "
            f"({len(room.discovered_clue_ids)} total)"
        )
        return ActionResult(room, [broadcast.room_updated(room)])

    def cast_vote(self, room_id: str, participant_id: str, role_id: str) -> ActionResult:
        """Last vote per participant wins, so votes can change until tallied."""
        room = self._store.require(room_id)
        room.votes[participant_id] = role_id
        logger.info(f"[{room_id}] {participant_id} voted for {role_id}")
        return ActionResult(room, [broadcast.room_updated(room)])

    # ── Chat ──────────────────────────────────────────────────────────────────

    def post_message(
        self, room_id: str, sender_id: str, body: str, kind: MessageKind = "chat"
    ) -> ActionResult:
        """Allowed in every phase. Goes to the room audience only."""
        room = self._store.require(room_id)
        message = self._store.append_message(
            room_id, Message(sender_id=sender_id, body=body, kind=kind)
        )
        logger.debug(f"[{room_id}] {kind} message from {sender_id}: {body[:80]}")
        return ActionResult(room, [broadcast.message_posted(room_id, message)])
