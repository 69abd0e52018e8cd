import pytest

from agents.game_master import GameMaster
from agents.room_lifecycle import RoomLifecycle
from models.room import PHASE_ORDER, Phase
from services.broadcast import Scope
from services.errors import InvalidPhaseTransition, NoContentLoaded, RoomNotFound
from services.identity_registry import IdentityRegistry
from services.room_store import RoomStore

from conftest import SCRIPT


@pytest.fixture
def store():
    return RoomStore()


@pytest.fixture
def gm(store):
    return GameMaster(store)


@pytest.fixture
def lifecycle(store):
    return RoomLifecycle(store, IdentityRegistry())


@pytest.fixture
def room(lifecycle):
    room = lifecycle.create_room("Manor", "u1", "Alice", SCRIPT).room
    lifecycle.join_room(room.id, "u2", "Bob")
    return room


@pytest.fixture
def empty_room(lifecycle):
    return lifecycle.create_room("Empty", "u1", "Alice").room


# ── Phases ────────────────────────────────────────────────────────────────────

def test_start_game_moves_to_reading(gm, room):
    result = gm.start_game(room.id)
    assert room.phase == Phase.READING
    assert [n.type for n in result.notifications] == ["roomUpdated"]
    assert result.notifications[0].scope == Scope.ROOM
    assert result.notifications[0].data["phase"] == "reading"


def test_start_game_without_content_fails(gm, empty_room):
    with pytest.raises(NoContentLoaded):
        gm.start_game(empty_room.id)
    assert empty_room.phase == Phase.WAITING


def test_start_game_twice_fails(gm, room):
    gm.start_game(room.id)
    with pytest.raises(InvalidPhaseTransition):
        gm.start_game(room.id)
    assert room.phase == Phase.READING


def test_start_game_unknown_room(gm):
    with pytest.raises(RoomNotFound):
        gm.start_game("nope")


def test_advance_phase_walks_the_order_without_skipping(gm, room):
    seen = [room.phase]
    for _ in range(len(PHASE_ORDER) - 1):
        gm.advance_phase(room.id)
        seen.append(room.phase)
    assert seen == PHASE_ORDER
    with pytest.raises(InvalidPhaseTransition):
        gm.advance_phase(room.id)
    assert room.phase == Phase.ENDING


def test_advance_from_waiting_requires_content(gm, empty_room):
    with pytest.raises(NoContentLoaded):
        gm.advance_phase(empty_room.id)


# ── Scene ─────────────────────────────────────────────────────────────────────

def test_set_scene(gm, room):
    result = gm.set_scene(room.id, "library")
    assert room.active_scene_id == "library"
    assert result.notifications[0].data["activeSceneId"] == "library"


# ── Roles ─────────────────────────────────────────────────────────────────────

def test_assign_role_last_write_wins(gm, room):
    gm.assign_role(room.id, "u2", "doctor")
    gm.assign_role(room.id, "u2", "butler")
    assert room.role_assignments == {"u2": "butler"}


def test_assign_role_allows_duplicates_and_non_members(gm, room):
    gm.assign_role(room.id, "u1", "doctor")
    gm.assign_role(room.id, "u2", "doctor")
    gm.assign_role(room.id, "ghost", "doctor")
    assert room.role_assignments == {"u1": "doctor", "u2": "doctor", "ghost": "doctor"}


def test_assign_role_always_broadcasts(gm, room):
    gm.assign_role(room.id, "u2", "doctor")
    result = gm.assign_role(room.id, "u2", "doctor")
    assert [n.type for n in result.notifications] == ["roomUpdated"]


# ── Clues ─────────────────────────────────────────────────────────────────────

def test_discover_clue_is_idempotent(gm, room):
    first = gm.discover_clue(room.id, "blood-stain")
    second = gm.discover_clue(room.id, "blood-stain")
    assert room.discovered_clue_ids == ["blood-stain"]
    assert [n.type for n in first.notifications] == ["roomUpdated"]
    assert second.notifications == []


def test_discovered_clues_keep_discovery_order(gm, room):
    for clue in ("knife", "letter", "knife", "glove"):
        gm.discover_clue(room.id, clue)
    assert room.discovered_clue_ids == ["knife", "letter", "glove"]


# ── Votes ─────────────────────────────────────────────────────────────────────

def test_cast_vote_can_change(gm, room):
    gm.cast_vote(room.id, "u1", "doctor")
    gm.cast_vote(room.id, "u1", "butler")
    gm.cast_vote(room.id, "u2", "butler")
    assert room.votes == {"u1": "butler", "u2": "butler"}
    assert room.vote_tally() == {"butler": 2}


def test_cast_vote_always_broadcasts(gm, room):
    gm.cast_vote(room.id, "u1", "doctor")
    result = gm.cast_vote(room.id, "u1", "doctor")
    assert [n.type for n in result.notifications] == ["roomUpdated"]


# ── Chat ──────────────────────────────────────────────────────────────────────

def test_post_message_appends_and_broadcasts_to_room(gm, room, store):
    result = gm.post_message(room.id, "u1", "Who was in the library?", "chat")
    note = result.notifications[0]
    assert note.type == "messagePosted"
    assert note.scope == Scope.ROOM
    assert note.data["senderId"] == "u1"
    assert note.data["body"] == "Who was in the library?"
    assert note.data["kind"] == "chat"
    assert note.data["id"]
    assert note.data["createdAt"]
    assert [m.body for m in store.get_messages(room.id)] == ["Who was in the library?"]


def test_post_message_in_any_phase(gm, room, store):
    for _ in range(len(PHASE_ORDER)):
        gm.post_message(room.id, "u1", f"in {room.phase.value}", "system")
        if room.phase != Phase.ENDING:
            gm.advance_phase(room.id)
    assert len(store.get_messages(room.id)) == len(PHASE_ORDER)


def test_message_ids_are_unique(gm, room, store):
    for i in range(20):
        gm.post_message(room.id, "u1", str(i))
    assert len({m.id for m in store.get_messages(room.id)}) == 20


def test_post_message_unknown_room(gm):
    with pytest.raises(RoomNotFound):
        gm.post_message("nope", "u1", "hi")
