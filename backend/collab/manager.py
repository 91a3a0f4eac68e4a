"""
Collaboration Manager - real-time session synchronization over WebSocket.

Handles:
- Connection lifecycle (connect -> join -> disconnect)
- Join / content-change / cursor-move protocol handlers
- Fan-out of session events to the other participants

Conflict policy is last-writer-wins on the full document text.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Optional

from fastapi import WebSocket

from . import protocol
from .models import Participant, Session
from .protocol import ProtocolError, JoinSession, ContentChange, CursorMove
from .store import SessionStore

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Protocol state of one WebSocket connection."""
    CONNECTED = "connected"        # accepted, not in a session yet
    JOINED = "joined"              # member of exactly one session
    DISCONNECTED = "disconnected"  # no further messages processed


@dataclass
class ClientConnection:
    """A live WebSocket connection and its protocol state."""
    id: str
    websocket: WebSocket
    state: ConnectionState = ConnectionState.CONNECTED
    session_id: Optional[str] = None


class CollaborationManager:
    """
    Manages collaborative editing sessions.

    Every handler takes the session's lock, applies the (synchronous) state
    change and performs the fan-out before releasing it, so peers observe
    events of one session in mutation order.
    """

    def __init__(self, store: Optional[SessionStore] = None, evict_empty_sessions: bool = False):
        self.store = store or SessionStore()
        self.evict_empty_sessions = evict_empty_sessions

        # Live connections: connection_id -> ClientConnection
        self.connections: Dict[str, ClientConnection] = {}

    # ─────────────────────────────────────────────────────────────────────────
    # Connection Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """Accept a WebSocket connection and assign its connection id."""
        await websocket.accept()

        connection = ClientConnection(id=uuid.uuid4().hex, websocket=websocket)
        self.connections[connection.id] = connection
        logger.info(f"Client {connection.id} connected ({len(self.connections)} connections)")

        await self.send_event(connection.id, protocol.CONNECTED, {"connectionId": connection.id})
        return connection

    async def disconnect(self, connection_id: str):
        """
        Remove the connection from every session it belongs to and notify peers.

        Unknown connection ids are a no-op.
        """
        connection = self.connections.pop(connection_id, None)
        if connection is not None:
            connection.state = ConnectionState.DISCONNECTED

        for session in self.store.sessions_for(connection_id):
            async with session.lock:
                participant = session.remove_participant(connection_id)
                if participant is None:
                    continue
                logger.info(f"User {participant.name} left session {session.id}")
                await self.broadcast(session, protocol.USER_LEFT, connection_id)
                if self.evict_empty_sessions:
                    self.store.discard_if_empty(session)

        logger.info(f"Client {connection_id} disconnected ({len(self.connections)} connections)")

    # ─────────────────────────────────────────────────────────────────────────
    # Sending
    # ─────────────────────────────────────────────────────────────────────────

    async def send_message(self, connection_id: str, message: Dict[str, Any]):
        """
        Send a message to one connection.

        Best effort: a recipient that is gone or whose socket fails drops the
        message silently; the receive loop of that connection handles cleanup.
        """
        connection = self.connections.get(connection_id)
        if connection is None:
            return
        try:
            await connection.websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.debug(f"Dropped {message.get('type')} for {connection_id}: {e}")

    async def send_event(self, connection_id: str, event_type: str, data: Any):
        await self.send_message(connection_id, protocol.event(event_type, data))

    async def broadcast(self, session: Session, event_type: str, data: Any, exclude: Optional[str] = None):
        """Send an event to every participant of the session except `exclude`."""
        message = protocol.event(event_type, data)
        for peer_id in session.peer_ids(exclude=exclude):
            await self.send_message(peer_id, message)

    # ─────────────────────────────────────────────────────────────────────────
    # Message Routing
    # ─────────────────────────────────────────────────────────────────────────

    async def handle_message(self, connection_id: str, message_data: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded message from a client.

        Returns an error message for the sender, or None when there is
        nothing to reply.
        """
        connection = self.connections.get(connection_id)
        if connection is None or connection.state == ConnectionState.DISCONNECTED:
            return None

        try:
            message = protocol.parse_client_message(message_data)
            if isinstance(message, JoinSession):
                await self._handle_join(connection, message)
            elif isinstance(message, ContentChange):
                await self._handle_content_change(connection, message)
            else:
                await self._handle_cursor_move(connection, message)
        except ProtocolError as e:
            logger.warning(f"Rejected message from {connection_id}: {e}")
            return protocol.error(str(e))

        return None

    def _joined_session(self, connection: ClientConnection, message: CursorMove, event_type: str) -> Optional[Session]:
        """Resolve the target session of a content-change/cursor-move, or None for a no-op."""
        if connection.state != ConnectionState.JOINED:
            raise ProtocolError(f"Join a session before sending {event_type}")

        if message.session_id != connection.session_id:
            logger.debug(
                f"Ignoring {event_type} from {connection.id} for session {message.session_id} "
                f"(joined {connection.session_id})"
            )
            return None

        session = self.store.get(message.session_id)
        if session is None:
            logger.debug(f"Ignoring {event_type} for unknown session {message.session_id}")
        return session

    # ─────────────────────────────────────────────────────────────────────────
    # Protocol Handlers
    # ─────────────────────────────────────────────────────────────────────────

    async def _handle_join(self, connection: ClientConnection, message: JoinSession):
        """Register the participant, send it the snapshot, tell the others."""
        if connection.state == ConnectionState.JOINED:
            raise ProtocolError(f"Already joined session {connection.session_id}")

        participant = Participant(
            id=connection.id,
            name=message.user_name,
            color=message.user_color,
        )

        while True:
            session = self.store.get_or_create(message.session_id)
            async with session.lock:
                if session.closed:
                    # Evicted while we waited for the lock
                    continue
                # Connection may have dropped while we waited
                if connection.state != ConnectionState.CONNECTED:
                    return

                session.add_participant(participant)
                connection.session_id = session.id
                connection.state = ConnectionState.JOINED

                await self.send_event(connection.id, protocol.SESSION_STATE, session.snapshot())
                await self.broadcast(session, protocol.USER_JOINED, participant.to_dict(), exclude=connection.id)
                break

        logger.info(f"User {participant.name} joined session {session.id}")

    async def _handle_content_change(self, connection: ClientConnection, message: ContentChange):
        """Replace the document text, update the sender's cursor, fan out."""
        session = self._joined_session(connection, message, protocol.CONTENT_CHANGE)
        if session is None:
            return

        async with session.lock:
            session.replace_content(message.content)
            cursor = session.update_cursor(
                connection.id,
                message.cursor_position,
                message.selection_start,
                message.selection_end,
            )

            data: Dict[str, Any] = {"content": message.content}
            if cursor is not None:
                data["cursor"] = cursor.to_dict()
            await self.broadcast(session, protocol.CONTENT_UPDATED, data, exclude=connection.id)

    async def _handle_cursor_move(self, connection: ClientConnection, message: CursorMove):
        """Update the sender's cursor only; content is untouched."""
        session = self._joined_session(connection, message, protocol.CURSOR_MOVE)
        if session is None:
            return

        async with session.lock:
            cursor = session.update_cursor(
                connection.id,
                message.cursor_position,
                message.selection_start,
                message.selection_end,
            )
            if cursor is None:
                logger.debug(f"Ignoring cursor-move from {connection.id}: not a participant of {session.id}")
                return
            await self.broadcast(session, protocol.CURSOR_UPDATED, cursor.to_dict(), exclude=connection.id)

    # ─────────────────────────────────────────────────────────────────────────
    # Read Access (monitoring / export)
    # ─────────────────────────────────────────────────────────────────────────

    async def export_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Snapshot of a session taken under its lock, or None if unknown."""
        session = self.store.get(session_id)
        if session is None:
            return None
        async with session.lock:
            if session.closed:
                return None
            return {"sessionId": session.id, **session.snapshot()}

    async def list_sessions(self):
        """Participant/cursor counts of every live session."""
        summaries = []
        for session in self.store.list_sessions():
            async with session.lock:
                if session.closed:
                    continue
                summaries.append({
                    "sessionId": session.id,
                    "participants": len(session.participants),
                    "cursors": len(session.cursors),
                })
        return summaries

    def stats(self) -> Dict[str, Any]:
        return {**self.store.stats(), "connections": len(self.connections)}


# Global instance
collab_manager: Optional[CollaborationManager] = None


def initialize_collab_manager(welcome_content: Optional[str] = None, evict_empty_sessions: bool = False) -> CollaborationManager:
    """Initialize the global collaboration manager."""
    global collab_manager
    store = SessionStore(welcome_content) if welcome_content is not None else SessionStore()
    collab_manager = CollaborationManager(store=store, evict_empty_sessions=evict_empty_sessions)
    return collab_manager
