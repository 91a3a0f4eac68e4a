import pytest
from collab.models import Participant, Cursor, Session
from collab.store import SessionStore, DEFAULT_WELCOME_CONTENT


class TestSessionStore:
    """Test suite for the in-memory session store"""

    @pytest.fixture
    def store(self):
        return SessionStore()

    def test_get_or_create_new_session(self, store):
        """Unseen id creates a session with the welcome content"""
        session = store.get_or_create("abc123")

        assert session.id == "abc123"
        assert session.content == DEFAULT_WELCOME_CONTENT
        assert session.participants == {}
        assert session.cursors == {}
        assert "abc123" in store
        assert len(store) == 1

    def test_get_or_create_returns_existing(self, store):
        first = store.get_or_create("abc123")
        first.replace_content("edited")

        second = store.get_or_create("abc123")

        assert second is first
        assert second.content == "edited"
        assert len(store) == 1

    def test_custom_welcome_content(self):
        store = SessionStore(welcome_content="# Hi")
        assert store.get_or_create("s").content == "# Hi"

    def test_get_does_not_create(self, store):
        assert store.get("missing") is None
        assert "missing" not in store
        assert len(store) == 0

    def test_sessions_for_connection(self, store):
        a = store.get_or_create("a")
        b = store.get_or_create("b")
        a.add_participant(Participant(id="c1", name="Alice", color="#fff"))
        b.add_participant(Participant(id="c2", name="Bob", color="#000"))

        assert store.sessions_for("c1") == [a]
        assert store.sessions_for("c2") == [b]
        assert store.sessions_for("nobody") == []

    def test_discard_if_empty(self, store):
        session = store.get_or_create("s")

        assert store.discard_if_empty(session) is True
        assert session.closed is True
        assert store.get("s") is None

        # A new join gets a fresh session
        fresh = store.get_or_create("s")
        assert fresh is not session
        assert fresh.closed is False

    def test_discard_keeps_occupied_session(self, store):
        session = store.get_or_create("s")
        session.add_participant(Participant(id="c1", name="Alice", color="#fff"))

        assert store.discard_if_empty(session) is False
        assert session.closed is False
        assert store.get("s") is session

    def test_stats(self, store):
        store.get_or_create("a").add_participant(Participant(id="c1", name="A", color="#1"))
        store.get_or_create("b")

        assert store.stats() == {"sessions": 2, "participants": 1}


class TestSession:
    """Test suite for per-session participant and cursor tables"""

    @pytest.fixture
    def session(self):
        session = Session(id="abc123", content="start")
        session.add_participant(Participant(id="c1", name="Alice", color="#fff"))
        return session

    def test_update_cursor_denormalizes_participant(self, session):
        cursor = session.update_cursor("c1", 5, 2, 7)

        assert cursor == Cursor(
            user_id="c1",
            user_name="Alice",
            user_color="#fff",
            position=5,
            selection_start=2,
            selection_end=7,
        )
        assert session.cursors["c1"] is cursor

    def test_update_cursor_overwrites(self, session):
        session.update_cursor("c1", 1)
        session.update_cursor("c1", 9)

        assert len(session.cursors) == 1
        assert session.cursors["c1"].position == 9

    def test_update_cursor_unknown_participant_is_noop(self, session):
        assert session.update_cursor("ghost", 3) is None
        assert "ghost" not in session.cursors

    def test_cursor_keeps_name_from_write_time(self, session):
        """Renaming a participant does not rewrite an existing cursor"""
        session.update_cursor("c1", 1)
        session.participants["c1"].name = "Alicia"

        assert session.cursors["c1"].user_name == "Alice"

        session.update_cursor("c1", 2)
        assert session.cursors["c1"].user_name == "Alicia"

    def test_offsets_are_not_validated(self, session):
        cursor = session.update_cursor("c1", 10_000, 8, 3)

        assert cursor.position == 10_000
        assert (cursor.selection_start, cursor.selection_end) == (8, 3)

    def test_remove_participant_removes_cursor(self, session):
        session.update_cursor("c1", 1)

        removed = session.remove_participant("c1")

        assert removed.name == "Alice"
        assert session.participants == {}
        assert session.cursors == {}
        assert session.is_empty

    def test_remove_unknown_participant(self, session):
        assert session.remove_participant("ghost") is None
        assert len(session.participants) == 1

    def test_peer_ids(self, session):
        session.add_participant(Participant(id="c2", name="Bob", color="#000"))

        assert session.peer_ids() == ["c1", "c2"]
        assert session.peer_ids(exclude="c1") == ["c2"]

    def test_snapshot(self, session):
        session.add_participant(Participant(id="c2", name="Bob", color="#000"))
        session.update_cursor("c2", 4)

        assert session.snapshot() == {
            "content": "start",
            "users": [
                {"id": "c1", "name": "Alice", "color": "#fff"},
                {"id": "c2", "name": "Bob", "color": "#000"},
            ],
            "cursors": [
                {"userId": "c2", "userName": "Bob", "userColor": "#000", "position": 4},
            ],
        }

    def test_cursor_to_dict_with_selection(self):
        cursor = Cursor("c1", "Alice", "#fff", 3, 1, 3)

        assert cursor.to_dict() == {
            "userId": "c1",
            "userName": "Alice",
            "userColor": "#fff",
            "position": 3,
            "selectionStart": 1,
            "selectionEnd": 3,
        }


def test_config_welcome_defaults_to_store_text(monkeypatch):
    """Configured welcome text falls back to the store's default"""
    import importlib
    import config

    monkeypatch.delenv("WELCOME_CONTENT", raising=False)
    reloaded = importlib.reload(config)

    assert reloaded.WELCOME_CONTENT == DEFAULT_WELCOME_CONTENT
