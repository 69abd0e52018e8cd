"""
Inbound action payloads — one model per client → server action type.

Every payload is validated before it reaches the lifecycle manager or the
game master; a missing or empty required field is a VALIDATION_ERROR that is
reported to the caller only.
"""
from typing import Any, Dict, Optional, Type

from pydantic import Field

from models.room import MessageKind, WireModel


class ConnectUserAction(WireModel):
    participant_id: str = Field(min_length=1)
    participant_name: str = ""


class CreateRoomAction(WireModel):
    name: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)
    participant_name: str = Field(min_length=1)
    content: Optional[Any] = None


class JoinRoomAction(WireModel):
    room_id: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)
    participant_name: str = Field(min_length=1)


class LeaveRoomAction(WireModel):
    room_id: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)


class PostMessageAction(WireModel):
    room_id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    body: str = Field(min_length=1)
    kind: MessageKind = "chat"


class StartGameAction(WireModel):
    room_id: str = Field(min_length=1)


class AdvancePhaseAction(WireModel):
    room_id: str = Field(min_length=1)


class SetSceneAction(WireModel):
    room_id: str = Field(min_length=1)
    scene_id: str = Field(min_length=1)


class AssignRoleAction(WireModel):
    room_id: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)
    role_id: str = Field(min_length=1)


class DiscoverClueAction(WireModel):
    room_id: str = Field(min_length=1)
    clue_id: str = Field(min_length=1)


class CastVoteAction(WireModel):
    room_id: str = Field(min_length=1)
    participant_id: str = Field(min_length=1)
    role_id: str = Field(min_length=1)


# Action type name (as sent by the client) → payload model.
ACTION_PAYLOADS: Dict[str, Type[WireModel]] = {
    "connectUser": ConnectUserAction,
    "createRoom": CreateRoomAction,
    "joinRoom": JoinRoomAction,
    "leaveRoom": LeaveRoomAction,
    "postMessage": PostMessageAction,
    "startGame": StartGameAction,
    "advancePhase": AdvancePhaseAction,
    "setScene": SetSceneAction,
    "assignRole": AssignRoleAction,
    "discoverClue": DiscoverClueAction,
    "castVote": CastVoteAction,
}
