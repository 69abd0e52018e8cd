from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Literal
from enum import Enum
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    """Timezone-aware UTC datetime (replaces deprecated datetime.utcnow)."""
    return datetime.now(timezone.utc)


def new_room_id() -> str:
    return str(uuid.uuid4())[:8].upper()


class Phase(str, Enum):
    WAITING = "waiting"
    READING = "reading"              # players read their character scripts
    INVESTIGATION = "investigation"
    DISCUSSION = "discussion"
    VOTING = "voting"
    ENDING = "ending"


# Forward-only progression. Index order is the only legal order.
PHASE_ORDER: List[Phase] = [
    Phase.WAITING,
    Phase.READING,
    Phase.INVESTIGATION,
    Phase.DISCUSSION,
    Phase.VOTING,
    Phase.ENDING,
]


MessageKind = Literal["chat", "system", "ai"]


class WireModel(BaseModel):
    """Base for everything that crosses the wire: camelCase out, either case in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Participant(WireModel):
    id: str
    display_name: str
    is_host: bool = False


class Room(WireModel):
    id: str = Field(default_factory=new_room_id)
    name: str
    host_id: str
    participants: List[Participant] = []
    phase: Phase = Phase.WAITING
    role_assignments: Dict[str, str] = {}   # participant_id → role_id
    active_scene_id: str = ""
    discovered_clue_ids: List[str] = []     # insertion order, no duplicates
    votes: Dict[str, str] = {}              # participant_id → role_id
    content: Optional[Any] = None           # opaque script blob, never inspected

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None

    def has_participant(self, participant_id: str) -> bool:
        return self.get_participant(participant_id) is not None

    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants]

    def vote_tally(self) -> Dict[str, int]:
        """Return {role_id: vote_count} over the current votes."""
        tally: Dict[str, int] = {}
        for role_id in self.votes.values():
            tally[role_id] = tally.get(role_id, 0) + 1
        return tally


class Message(WireModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sender_id: str
    body: str
    kind: MessageKind = "chat"
    created_at: datetime = Field(default_factory=_utcnow)


# ── HTTP request/response models ──────────────────────────────────────────────

class CreateRoomRequest(WireModel):
    name: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)
    participant_name: str = Field(min_length=1)
    content: Optional[Any] = None


class VoteTallyResponse(WireModel):
    room_id: str
    phase: Phase
    tally: Dict[str, int]
    votes_cast: int
