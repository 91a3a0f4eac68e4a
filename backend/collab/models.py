"""
Session models for collaborative editing.

A Session is one shared document plus the people editing it:
- Participant: one connected user (display name + color)
- Cursor: last reported caret/selection of a participant
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List


@dataclass
class Participant:
    """A connected user within a session."""
    id: str        # connection id, stable for the connection's lifetime
    name: str      # client-supplied, not unique
    color: str     # client-supplied display color

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color
        }


@dataclass
class Cursor:
    """
    Last reported caret position and selection of one participant.

    user_name/user_color are copied from the Participant when the cursor is
    written, they are not kept in sync afterwards.
    """
    user_id: str
    user_name: str
    user_color: str
    position: int
    selection_start: Optional[int] = None
    selection_end: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "userId": self.user_id,
            "userName": self.user_name,
            "userColor": self.user_color,
            "position": self.position,
        }
        if self.selection_start is not None:
            data["selectionStart"] = self.selection_start
        if self.selection_end is not None:
            data["selectionEnd"] = self.selection_end
        return data


@dataclass
class Session:
    """
    Session = Document text + Participants + Cursors

    Mutators are synchronous; callers serialize them through `lock`.
    """
    id: str
    content: str
    participants: Dict[str, Participant] = field(default_factory=dict)
    cursors: Dict[str, Cursor] = field(default_factory=dict)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    # Set when the store evicts the session; holders of a stale reference must re-fetch
    closed: bool = False

    def add_participant(self, participant: Participant) -> None:
        self.participants[participant.id] = participant

    def remove_participant(self, connection_id: str) -> Optional[Participant]:
        """Remove a participant and its cursor. Returns the removed participant, if any."""
        self.cursors.pop(connection_id, None)
        return self.participants.pop(connection_id, None)

    def has_participant(self, connection_id: str) -> bool:
        return connection_id in self.participants

    def replace_content(self, content: str) -> None:
        # Last writer wins: no merge, no history
        self.content = content

    def update_cursor(
        self,
        connection_id: str,
        position: int,
        selection_start: Optional[int] = None,
        selection_end: Optional[int] = None,
    ) -> Optional[Cursor]:
        """
        Overwrite the cursor of a participant.

        Returns None (and changes nothing) when the connection is not a
        participant, e.g. a late message racing with its disconnect.
        """
        participant = self.participants.get(connection_id)
        if participant is None:
            return None

        cursor = Cursor(
            user_id=participant.id,
            user_name=participant.name,
            user_color=participant.color,
            position=position,
            selection_start=selection_start,
            selection_end=selection_end,
        )
        self.cursors[connection_id] = cursor
        return cursor

    def peer_ids(self, exclude: Optional[str] = None) -> List[str]:
        return [pid for pid in self.participants if pid != exclude]

    @property
    def is_empty(self) -> bool:
        return not self.participants

    def snapshot(self) -> Dict[str, Any]:
        """Full state as sent to a joining client (insertion order, no sorting)."""
        return {
            "content": self.content,
            "users": [p.to_dict() for p in self.participants.values()],
            "cursors": [c.to_dict() for c in self.cursors.values()]
        }
