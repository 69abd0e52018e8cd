"""
Room directory HTTP endpoints.

Routes:
  GET  /api/rooms                       — Every live room (point-in-time snapshot)
  POST /api/rooms                       — Create a room, requester becomes host
  GET  /api/rooms/{room_id}             — One room
  GET  /api/rooms/{room_id}/messages    — Chat timeline, most recent last
  GET  /api/rooms/{room_id}/votes       — Current vote tally

Reads have no subscription semantics; live updates come over /ws.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from config import settings
from models.room import CreateRoomRequest
from routers.ws_router import ConnectionManager, get_connection_manager
from services.errors import RoomNotFound
from services.sync_engine import SyncEngine, get_sync_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


@router.get("/rooms")
async def list_rooms(engine: SyncEngine = Depends(get_sync_engine)):
    return engine.list_rooms()


@router.post("/rooms", status_code=201)
async def create_room(
    body: CreateRoomRequest,
    engine: SyncEngine = Depends(get_sync_engine),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Create a room; every connected client receives the new room list."""
    room = manager.run(
        engine.create_room,
        body.name, body.participant_id, body.participant_name, body.content,
    )
    return room.to_wire()


@router.get("/rooms/{room_id}")
async def get_room(room_id: str, engine: SyncEngine = Depends(get_sync_engine)):
    room = engine.get_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.get("/rooms/{room_id}/messages")
async def get_messages(
    room_id: str,
    limit: Optional[int] = Query(None, ge=1, description="Most recent N messages"),
    engine: SyncEngine = Depends(get_sync_engine),
):
    try:
        messages = engine.get_messages(room_id, limit or settings.message_history_limit)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
    return {
        "roomId": room_id,
        "messages": [m.to_wire() for m in messages],
    }


@router.get("/rooms/{room_id}/votes")
async def get_votes(room_id: str, engine: SyncEngine = Depends(get_sync_engine)):
    try:
        return engine.get_vote_tally(room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")
