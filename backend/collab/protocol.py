"""
Wire protocol for collaborative sessions.

Client -> server messages are JSON objects with a "type" field and the
payload fields at the top level. Server -> client events are sent as
{"type": <event>, "data": <payload>}.
"""

from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

# Client -> server
JOIN_SESSION = "join-session"
CONTENT_CHANGE = "content-change"
CURSOR_MOVE = "cursor-move"

# Server -> client
CONNECTED = "connected"
SESSION_STATE = "session-state"
USER_JOINED = "user-joined"
CONTENT_UPDATED = "content-updated"
CURSOR_UPDATED = "cursor-updated"
USER_LEFT = "user-left"
ERROR = "error"


class ProtocolError(Exception):
    """A single client message could not be accepted."""


class _ClientMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")


class JoinSession(_ClientMessage):
    user_name: str = Field(..., alias="userName")
    user_color: str = Field(..., alias="userColor")


class CursorMove(_ClientMessage):
    cursor_position: int = Field(..., alias="cursorPosition")
    selection_start: Optional[int] = Field(default=None, alias="selectionStart")
    selection_end: Optional[int] = Field(default=None, alias="selectionEnd")

    @model_validator(mode="after")
    def _selection_pair(self) -> "CursorMove":
        # Offsets are not bounds-checked or ordered here, only paired
        if (self.selection_start is None) != (self.selection_end is None):
            raise ValueError("selectionStart and selectionEnd must be sent together")
        return self


class ContentChange(CursorMove):
    content: str


ClientMessage = Union[JoinSession, ContentChange, CursorMove]

MESSAGE_TYPES: Dict[str, Type[_ClientMessage]] = {
    JOIN_SESSION: JoinSession,
    CONTENT_CHANGE: ContentChange,
    CURSOR_MOVE: CursorMove,
}


def parse_client_message(message_data: Any) -> ClientMessage:
    """Validate a decoded client message. Raises ProtocolError on any problem."""
    if not isinstance(message_data, dict):
        raise ProtocolError("Invalid JSON format")

    message_type = message_data.get("type")
    model = MESSAGE_TYPES.get(message_type)
    if model is None:
        raise ProtocolError(f"Unknown message type: {message_type}")

    try:
        return model.model_validate(message_data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'message'}: {err['msg']}"
            for err in e.errors()
        )
        raise ProtocolError(f"Invalid {message_type} payload: {details}") from e


def event(event_type: str, data: Any) -> Dict[str, Any]:
    """Build a server -> client event."""
    return {"type": event_type, "data": data}


def error(message: str) -> Dict[str, Any]:
    return {"type": ERROR, "message": message}
