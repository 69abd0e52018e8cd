"""Shared fixtures: a fresh engine (and transport) per test."""
import pytest
from fastapi.testclient import TestClient

from main import app
from routers.ws_router import ConnectionManager, get_connection_manager
from services.sync_engine import SyncEngine, get_sync_engine


SCRIPT = {
    "id": "manor-script",
    "title": "Murder at the Manor",
    "characters": [{"id": "doctor", "name": "Dr. Grey"}, {"id": "butler", "name": "Mr. Hale"}],
    "clues": [{"id": "blood-stain", "location": "library"}],
}


@pytest.fixture
def engine():
    return SyncEngine()


@pytest.fixture
def client(engine):
    manager = ConnectionManager()
    app.dependency_overrides[get_sync_engine] = lambda: engine
    app.dependency_overrides[get_connection_manager] = lambda: manager
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def of_type(deliveries, type_):
    return [d for d in deliveries if d.message["type"] == type_]


def handles(deliveries, type_):
    return [d.handle for d in of_type(deliveries, type_)]


def create(engine, handle="h1", participant_id="u1", name="Alice", room_name="Manor", content=None):
    """Create a room through the engine; returns (room_id, deliveries)."""
    data = {"name": room_name, "participantId": participant_id, "participantName": name}
    if content is not None:
        data["content"] = content
    deliveries = engine.dispatch(handle, "createRoom", data)
    room_id = of_type(deliveries, "roomCreated")[0].message["data"]["id"]
    return room_id, deliveries


def join(engine, room_id, handle, participant_id, name):
    return engine.dispatch(handle, "joinRoom", {
        "roomId": room_id, "participantId": participant_id, "participantName": name,
    })
