"""
REST API for collaborative sessions.

Session ids are minted here for the landing page; all session state is
created and mutated over the WebSocket protocol only. Reads go through the
manager so they are serialized with protocol handlers.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import List
import random
import uuid

from collab import manager as collab_module  # Access collab_manager at runtime

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

# Palette offered to new participants
USER_COLORS = [
    '#3b82f6', '#06b6d4', '#10b981', '#f59e0b', '#ef4444',
    '#8b5cf6', '#ec4899', '#14b8a6', '#f97316', '#84cc16'
]


class NewSession(BaseModel):
    sessionId: str
    userColor: str


class SessionSummary(BaseModel):
    sessionId: str
    participants: int
    cursors: int


def _get_manager():
    if collab_module.collab_manager is None:
        raise HTTPException(status_code=503, detail="Collaboration manager not initialized")
    return collab_module.collab_manager


def new_session_id() -> str:
    """Short random session id (first 8 hex chars of a uuid4)."""
    return uuid.uuid4().hex[:8]


def pick_user_color() -> str:
    return random.choice(USER_COLORS)


@router.post("", response_model=NewSession)
async def create_session():
    """Mint a session id and a suggested color. The session exists once someone joins it."""
    return NewSession(sessionId=new_session_id(), userColor=pick_user_color())


@router.get("", response_model=List[SessionSummary])
async def list_sessions():
    """List live sessions with participant and cursor counts."""
    manager = _get_manager()
    return await manager.list_sessions()


@router.get("/{session_id}")
async def get_session(session_id: str):
    """Export the current snapshot of a session."""
    manager = _get_manager()
    snapshot = await manager.export_session(session_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return snapshot
