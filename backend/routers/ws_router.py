"""
WebSocket Hub — real-time room synchronization.

URL: /ws?participantId={participant_id}   (participantId optional)

Connection flow:
  1. Accept connection → allocate a connection handle
  2. Register the handle with the engine (bind participantId if given)
  3. Message loop: each frame {type, data} is one action
  4. On disconnect: unbind the handle. Room membership is NOT touched;
     the participant stays in every room and can reconnect and resume.

Client → server action types:
  ping          — keep-alive heartbeat → responds with "pong"
  connectUser   — bind this connection to a participant identity
  createRoom    — new room, caller becomes host
  joinRoom      — join (or rejoin) a room
  leaveRoom     — leave a room; host passes to the earliest remaining joiner
  postMessage   — append to the room's chat timeline
  startGame     — waiting → reading (needs script content)
  advancePhase  — one phase forward, host-driven
  setScene      — change the room's active scene
  assignRole    — give a participant a role
  discoverClue  — add a clue to the room's discovered set
  castVote      — record/replace a participant's vote

Server → client notifications:
  roomCreated, roomJoined, roomNotFound, error, pong   (caller only)
  roomUpdated, messagePosted                           (room audience)
  roomListUpdated                                      (every connection)

Undecodable frames and unknown action types are ignored.
"""
import asyncio
import json
import logging
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from config import settings
from services import broadcast
from services.broadcast import Delivery
from services.sync_engine import SyncEngine, get_sync_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


# ── Connection Manager ─────────────────────────────────────────────────────────

class ConnectionManager:
    """
    Maps connection handles to live WebSockets and performs the actual sends.

    Every connection owns a FIFO send queue drained by its own writer task.
    Applying an action and enqueueing its deliveries happens with no await in
    between, so deliveries of consecutive actions never interleave and every
    client sees room updates in the order they were applied. Safe without a
    Lock because asyncio is single-threaded. A slow client only backs up its
    own queue; once that passes send_queue_limit the connection is closed.
    """

    def __init__(self, send_queue_limit: Optional[int] = None):
        # {handle: WebSocket}
        self._sockets: Dict[str, WebSocket] = {}
        self._queues: Dict[str, asyncio.Queue] = {}
        self._writers: Dict[str, asyncio.Task] = {}
        self._queue_limit = send_queue_limit or settings.send_queue_limit

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        handle = str(uuid.uuid4())
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_limit)
        self._sockets[handle] = ws
        self._queues[handle] = queue
        self._writers[handle] = asyncio.create_task(
            self._writer(handle, ws, queue), name=f"ws-writer-{handle[:8]}"
        )
        logger.debug(f"Connection {handle} opened ({self.count()} total)")
        return handle

    def disconnect(self, handle: str) -> None:
        """Forget *handle*; anything still queued for it is dropped."""
        self._sockets.pop(handle, None)
        self._queues.pop(handle, None)
        writer = self._writers.pop(handle, None)
        if writer and writer is not asyncio.current_task() and not writer.done():
            writer.cancel()

    def count(self) -> int:
        return len(self._sockets)

    # ── Sending ────────────────────────────────────────────────────────────────

    def deliver(self, deliveries: List[Delivery]) -> None:
        """Enqueue each delivery on its connection's queue. Never awaits."""
        for d in deliveries:
            queue = self._queues.get(d.handle)
            if queue is None:
                continue
            try:
                queue.put_nowait(d.message)
            except asyncio.QueueFull:
                logger.warning(
                    f"Connection {d.handle} fell {self._queue_limit} frames behind; closing"
                )
                ws = self._sockets.get(d.handle)
                self.disconnect(d.handle)
                if ws is not None:
                    asyncio.create_task(_close(ws, d.handle))

    def apply(
        self, engine: SyncEngine, handle: Optional[str], action: str, data
    ) -> None:
        """Apply one action through the engine and enqueue the result."""
        self.deliver(engine.dispatch(handle, action, data))

    def run(self, fn, *args):
        """Run a synchronous engine call and enqueue its deliveries; returns its result.

        *fn* must return ``(value, deliveries)``.
        """
        value, deliveries = fn(*args)
        self.deliver(deliveries)
        return value

    async def _writer(self, handle: str, ws: WebSocket, queue: asyncio.Queue) -> None:
        while True:
            message = await queue.get()
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.warning(f"Send to {handle} failed: {exc}")
                self.disconnect(handle)
                return


async def _close(ws: WebSocket, handle: str) -> None:
    try:
        await ws.close(code=1013)
    except Exception as exc:
        logger.debug(f"Closing {handle} failed: {exc}")


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


# ── WebSocket endpoint ─────────────────────────────────────────────────────────

@router.websocket("/ws")
async def websocket_endpoint(
    ws: WebSocket,
    participantId: Optional[str] = Query(None, description="Participant identity to bind"),
    engine: SyncEngine = Depends(get_sync_engine),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    handle = await manager.connect(ws)
    engine.connect(handle, participantId)

    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                logger.debug(f"Connection {handle}: dropping binary frame")
                continue
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug(f"Connection {handle}: dropping undecodable frame")
                continue
            if not isinstance(frame, dict):
                continue

            action = frame.get("type", "")
            if not isinstance(action, str):
                continue
            _handle_action(engine, manager, handle, action, frame.get("data"))

    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(handle)
        engine.disconnect(handle)
        logger.debug(f"Connection {handle} closed ({manager.count()} remaining)")


def _handle_action(
    engine: SyncEngine,
    manager: ConnectionManager,
    handle: str,
    action: str,
    data,
) -> None:
    try:
        manager.apply(engine, handle, action, data)
    except Exception:
        logger.exception(f"Unhandled error applying action (type={action})")
        manager.deliver([
            Delivery(handle, broadcast.error(
                "SERVER_ERROR", "Internal server error", action
            ).envelope())
        ])
