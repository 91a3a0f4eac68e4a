"""
Real-time collaborative editing of a shared markdown document.

This module provides:
- SessionStore: in-memory registry of sessions (document + participants + cursors)
- CollaborationManager: WebSocket protocol handling and fan-out to peers
"""

from .models import Session, Participant, Cursor
from .store import SessionStore
from .manager import (
    CollaborationManager,
    ClientConnection,
    ConnectionState,
    collab_manager,
    initialize_collab_manager,
)
from . import protocol

__all__ = [
    'Session',
    'Participant',
    'Cursor',
    'SessionStore',
    'CollaborationManager',
    'ClientConnection',
    'ConnectionState',
    'collab_manager',
    'initialize_collab_manager',
    'protocol',
]
