"""ConnectionManager send queues, exercised with in-memory sockets."""
import asyncio

import pytest

from routers.ws_router import ConnectionManager
from services.broadcast import Delivery
from services.sync_engine import SyncEngine


class RecordingSocket:
    def __init__(self):
        self.sent = []
        self.closed_with = None

    async def accept(self):
        pass

    async def send_json(self, message):
        self.sent.append(message)

    async def close(self, code=1000):
        self.closed_with = code


class StalledSocket(RecordingSocket):
    """A client whose receive buffer is full until *release* is set."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def send_json(self, message):
        await self.release.wait()
        self.sent.append(message)


class BrokenSocket(RecordingSocket):
    async def send_json(self, message):
        raise RuntimeError("socket is gone")


async def settle():
    for _ in range(20):
        await asyncio.sleep(0)


def types(socket):
    return [m["type"] for m in socket.sent]


CREATE = {"name": "Manor", "participantId": "u1", "participantName": "Alice"}


@pytest.mark.asyncio
async def test_stalled_client_does_not_hold_up_others():
    manager, engine = ConnectionManager(), SyncEngine()
    slow, fast = StalledSocket(), RecordingSocket()
    slow_handle = await manager.connect(slow)
    fast_handle = await manager.connect(fast)
    engine.connect(slow_handle)
    engine.connect(fast_handle)

    manager.apply(engine, slow_handle, "createRoom", CREATE)
    manager.apply(engine, fast_handle, "ping", None)
    await settle()

    assert slow.sent == []
    assert types(fast) == ["roomListUpdated", "pong"]

    slow.release.set()
    await settle()
    assert types(slow) == ["roomCreated", "roomListUpdated"]

    manager.disconnect(slow_handle)
    manager.disconnect(fast_handle)


@pytest.mark.asyncio
async def test_deliveries_keep_apply_order_per_connection():
    manager, engine = ConnectionManager(), SyncEngine()
    host, guest = RecordingSocket(), RecordingSocket()
    host_handle = await manager.connect(host)
    guest_handle = await manager.connect(guest)
    engine.connect(host_handle)
    engine.connect(guest_handle)

    manager.apply(engine, host_handle, "createRoom", CREATE)
    await settle()
    room_id = host.sent[0]["data"]["id"]
    manager.apply(engine, guest_handle, "joinRoom", {
        "roomId": room_id, "participantId": "u2", "participantName": "Bob",
    })
    for scene in ("hall", "library", "cellar"):
        manager.apply(engine, host_handle, "setScene", {"roomId": room_id, "sceneId": scene})
    await settle()

    scenes = [m["data"]["activeSceneId"] for m in host.sent if m["type"] == "roomUpdated"]
    assert scenes == ["", "hall", "library", "cellar"]
    assert [m["data"]["activeSceneId"] for m in guest.sent if m["type"] == "roomUpdated"] == [
        "", "hall", "library", "cellar",
    ]

    manager.disconnect(host_handle)
    manager.disconnect(guest_handle)


@pytest.mark.asyncio
async def test_failed_send_drops_connection():
    manager = ConnectionManager()
    handle = await manager.connect(BrokenSocket())
    assert manager.count() == 1

    manager.deliver([Delivery(handle, {"type": "pong", "data": {}})])
    await settle()
    assert manager.count() == 0


@pytest.mark.asyncio
async def test_overflowing_queue_closes_connection():
    manager = ConnectionManager(send_queue_limit=2)
    slow, fast = StalledSocket(), RecordingSocket()
    slow_handle = await manager.connect(slow)
    fast_handle = await manager.connect(fast)

    frame = {"type": "pong", "data": {}}
    # The writer takes the first frame and blocks sending it.
    manager.deliver([Delivery(slow_handle, frame)])
    await settle()
    manager.deliver([Delivery(slow_handle, frame)] * 3 + [Delivery(fast_handle, frame)])
    await settle()

    assert slow.closed_with == 1013
    assert manager.count() == 1
    assert types(fast) == ["pong"]

    manager.disconnect(fast_handle)
