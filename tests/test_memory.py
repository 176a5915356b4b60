"""Tests for conversation stores and conversation state."""

import sqlite3
import threading
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from memory.store import InMemoryConversationStore, PersistenceError
from memory.sqlite_store import SQLiteConversationStore
from memory.context_manager import ConversationState
from memory.models import ConversationTurn


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteConversationStore(db_path=str(tmp_path / "conversations.db"))
    return InMemoryConversationStore()


class TestConversationStore:
    """Behavior shared by every store implementation."""

    def test_create_and_get(self, store):
        """Test a new conversation is empty and titled."""
        conversation = store.create_conversation()

        loaded = store.get_conversation(conversation.conversation_id)
        assert loaded.title == "New Chat"
        assert loaded.current_topic is None
        assert loaded.turns == []

    def test_explicit_id(self, store):
        """Test caller-provided ids are kept."""
        store.create_conversation(conversation_id="conv-1")

        assert store.get_conversation("conv-1") is not None

    def test_get_missing_returns_none(self, store):
        """Test unknown ids return None."""
        assert store.get_conversation("missing") is None

    def test_turns_in_order(self, store):
        """Test turns are numbered and returned oldest first."""
        store.create_conversation(conversation_id="conv-1")
        store.create_turn("conv-1", "user", "Hi")
        store.create_turn("conv-1", "assistant", "Hello dost!", {"mode": "chat"})

        turns = store.list_turns("conv-1")
        assert [turn.turn_id for turn in turns] == [1, 2]
        assert [turn.role for turn in turns] == ["user", "assistant"]
        assert turns[1].metadata == {"mode": "chat"}

    def test_turn_for_missing_conversation(self, store):
        """Test appending to an unknown conversation is a persistence error."""
        with pytest.raises(PersistenceError):
            store.create_turn("missing", "user", "Hi")

    def test_invalid_role(self, store):
        """Test only user and assistant roles are accepted."""
        store.create_conversation(conversation_id="conv-1")

        with pytest.raises(ValueError):
            store.create_turn("conv-1", "system", "nope")

    def test_update_topic_and_title(self, store):
        """Test topic and title are overwritten independently."""
        store.create_conversation(conversation_id="conv-1")

        store.update_conversation("conv-1", current_topic="Oppenheimer")
        store.update_conversation("conv-1", title="Movie night")

        loaded = store.get_conversation("conv-1")
        assert loaded.current_topic == "Oppenheimer"
        assert loaded.title == "Movie night"

    def test_clear_topic(self, store):
        """Test None clears the topic."""
        store.create_conversation(conversation_id="conv-1")
        store.update_conversation("conv-1", current_topic="Oppenheimer")

        store.update_conversation("conv-1", current_topic=None)

        assert store.get_conversation("conv-1").current_topic is None

    def test_update_missing_returns_none(self, store):
        """Test updating an unknown conversation returns None."""
        assert store.update_conversation("missing", current_topic="x") is None

    def test_list_conversations_most_recent_first(self, store):
        """Test listing orders by last update."""
        store.create_conversation(conversation_id="old")
        store.create_conversation(conversation_id="new")
        store.create_turn("old", "user", "bump")

        ids = [conversation.conversation_id for conversation in store.list_conversations()]
        assert ids[0] == "old"
        assert set(ids) == {"old", "new"}

    def test_list_conversations_limit(self, store):
        """Test the listing limit is applied."""
        for i in range(3):
            store.create_conversation(conversation_id=f"conv-{i}")

        assert len(store.list_conversations(limit=2)) == 2

    def test_delete_conversation(self, store):
        """Test deleting removes the conversation and its turns."""
        store.create_conversation(conversation_id="conv-1")
        store.create_turn("conv-1", "user", "Hi")

        assert store.delete_conversation("conv-1") is True
        assert store.get_conversation("conv-1") is None
        assert store.list_turns("conv-1") == []
        assert store.delete_conversation("conv-1") is False

    def test_save_exchange(self, store):
        """Test both turns, the topic and the first title are stored together."""
        store.create_conversation(conversation_id="conv-1")

        user_turn, assistant_turn = store.save_exchange(
            "conv-1", "Hi", "Hello dost!", {"mode": "chat"},
            current_topic="Dune", first_title="Hi"
        )

        loaded = store.get_conversation("conv-1")
        assert [turn.turn_id for turn in loaded.turns] == [1, 2]
        assert [turn.role for turn in loaded.turns] == ["user", "assistant"]
        assert loaded.turns[1].metadata == {"mode": "chat"}
        assert (user_turn.turn_id, assistant_turn.turn_id) == (1, 2)
        assert loaded.current_topic == "Dune"
        assert loaded.title == "Hi"

    def test_save_exchange_title_only_first_time(self, store):
        """Test later exchanges keep the title but overwrite the topic."""
        store.create_conversation(conversation_id="conv-1")
        store.save_exchange("conv-1", "Hi", "Hello!", current_topic="Dune", first_title="Hi")

        store.save_exchange("conv-1", "And Barbie?", "Pink!", current_topic="Barbie", first_title="And Barbie?")

        loaded = store.get_conversation("conv-1")
        assert loaded.title == "Hi"
        assert loaded.current_topic == "Barbie"
        assert [turn.turn_id for turn in loaded.turns] == [1, 2, 3, 4]

    def test_save_exchange_missing_conversation(self, store):
        """Test saving into an unknown conversation stores nothing."""
        with pytest.raises(PersistenceError):
            store.save_exchange("missing", "Hi", "Hello!")

        assert store.list_turns("missing") == []

    def test_save_exchange_invalid_reply_stores_nothing(self, store):
        """Test a reply that cannot be stored leaves no user turn behind."""
        store.create_conversation(conversation_id="conv-1")

        with pytest.raises(ValueError):
            store.save_exchange("conv-1", "Hi", "Hello!", assistant_metadata="not a dict")

        assert store.list_turns("conv-1") == []


class TestSQLiteConversationStore:
    """SQLite-specific behavior."""

    def test_persists_across_instances(self, tmp_path):
        """Test data survives reopening the database."""
        db_path = str(tmp_path / "conversations.db")
        store = SQLiteConversationStore(db_path=db_path)
        store.create_conversation(conversation_id="conv-1")
        store.create_turn("conv-1", "user", "Hi", {"mode": "chat"})
        store.update_conversation("conv-1", current_topic="Dune")

        reopened = SQLiteConversationStore(db_path=db_path)
        loaded = reopened.get_conversation("conv-1")
        assert loaded.current_topic == "Dune"
        assert loaded.turns[0].content == "Hi"
        assert loaded.turns[0].metadata == {"mode": "chat"}

    def test_duplicate_id_is_persistence_error(self, tmp_path):
        """Test a primary key clash surfaces as PersistenceError."""
        store = SQLiteConversationStore(db_path=str(tmp_path / "conversations.db"))
        store.create_conversation(conversation_id="conv-1")

        with pytest.raises(PersistenceError):
            store.create_conversation(conversation_id="conv-1")

    def test_failed_reply_insert_rolls_back_exchange(self, tmp_path):
        """Test a database failure on the reply undoes the user turn and topic."""
        db_path = tmp_path / "conversations.db"
        store = SQLiteConversationStore(db_path=str(db_path))
        store.create_conversation(conversation_id="conv-1")
        conn = sqlite3.connect(db_path)
        conn.execute(
            """
            CREATE TRIGGER reject_replies BEFORE INSERT ON turns
            WHEN NEW.role = 'assistant'
            BEGIN SELECT RAISE(ABORT, 'disk full'); END
            """
        )
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceError):
            store.save_exchange("conv-1", "Hi", "Hello!", current_topic="Dune", first_title="Hi")

        loaded = store.get_conversation("conv-1")
        assert loaded.turns == []
        assert loaded.current_topic is None
        assert loaded.title == "New Chat"

    def test_connection_failure_is_persistence_error(self, tmp_path):
        """Test sqlite errors are wrapped."""
        store = SQLiteConversationStore(db_path=str(tmp_path / "conversations.db"))

        with patch("memory.sqlite_store.sqlite3.connect", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(PersistenceError):
                store.list_conversations()


class TestInMemoryConversationStore:
    """In-memory specific behavior."""

    def test_concurrent_appends(self):
        """Test concurrent appends keep unique, gapless turn ids."""
        store = InMemoryConversationStore()
        store.create_conversation(conversation_id="conv-1")

        threads = [
            threading.Thread(target=store.create_turn, args=("conv-1", "user", f"msg {i}"))
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        turn_ids = sorted(turn.turn_id for turn in store.list_turns("conv-1"))
        assert turn_ids == list(range(1, 21))


class TestConversationState:
    """Test the conversation state wrapper."""

    def setup_method(self):
        """Set up test fixtures."""
        self.state = ConversationState(InMemoryConversationStore())
        self.conversation_id = self.state.get_or_create("conv-1").conversation_id

    def test_get_or_create_reuses_existing(self):
        """Test an existing conversation is loaded, not recreated."""
        self.state.append_turn("conv-1", "user", "Hi")

        conversation = self.state.get_or_create("conv-1")

        assert len(conversation.turns) == 1

    def test_get_or_create_generates_id(self):
        """Test a missing id creates a fresh conversation."""
        conversation = self.state.get_or_create()

        assert conversation.conversation_id
        assert conversation.conversation_id != "conv-1"

    def test_recent_turns_window(self):
        """Test the last n turns are returned oldest first."""
        for i in range(8):
            self.state.append_turn("conv-1", "user" if i % 2 == 0 else "assistant", f"turn {i}")

        recent = self.state.recent_turns("conv-1", 3)

        assert [turn.content for turn in recent] == ["turn 5", "turn 6", "turn 7"]

    def test_recent_turns_zero(self):
        """Test n=0 returns nothing."""
        self.state.append_turn("conv-1", "user", "Hi")

        assert self.state.recent_turns("conv-1", 0) == []

    def test_topic_overwrite(self):
        """Test set_topic replaces rather than merges."""
        assert self.state.get_topic("conv-1") is None

        self.state.set_topic("conv-1", "Oppenheimer")
        self.state.set_topic("conv-1", "Barbie")

        assert self.state.get_topic("conv-1") == "Barbie"

    def test_record_exchange_titles_first_exchange(self):
        """Test long first messages are cut to 50 characters."""
        message = "Can you recommend a few mind-bending sci-fi movies like Inception?"

        self.state.record_exchange("conv-1", message, "Sure!", {"mode": "cinephile"}, "Inception")

        conversation = self.state.store.get_conversation("conv-1")
        assert conversation.title == message[:50] + "..."
        assert conversation.current_topic == "Inception"
        assert [turn.content for turn in conversation.turns] == [message, "Sure!"]

    def test_short_title_not_ellipsized(self):
        """Test short first messages are used as is."""
        self.state.record_exchange("conv-1", "Hi", "Hello!")

        assert self.state.store.get_conversation("conv-1").title == "Hi"

    def test_title_unchanged_after_later_exchanges(self):
        """Test only the first exchange sets the title."""
        self.state.record_exchange("conv-1", "Hi", "Hello!")
        self.state.record_exchange("conv-1", "Recommend a movie", "Sure!", topic="Dune")

        conversation = self.state.store.get_conversation("conv-1")
        assert conversation.title == "Hi"
        assert conversation.current_topic == "Dune"

    def test_record_exchange_clears_topic(self):
        """Test an exchange without a topic overwrites the slot with None."""
        self.state.set_topic("conv-1", "Oppenheimer")

        self.state.record_exchange("conv-1", "tell me a joke", "Why did the chicken...", topic=None)

        assert self.state.get_topic("conv-1") is None

    def test_empty_message_keeps_default_title(self):
        """Test an empty opening message does not blank the title."""
        assert self.state.title_for("") == "New Chat"


class TestConversationTurn:
    """Test the turn model."""

    def test_role_is_closed_set(self):
        """Test roles outside user and assistant are rejected."""
        with pytest.raises(ValidationError):
            ConversationTurn(turn_id=1, role="system", content="nope")

    def test_turn_is_immutable(self):
        """Test stored turns cannot be edited."""
        turn = ConversationTurn(turn_id=1, role="user", content="Hi")

        with pytest.raises(ValidationError):
            turn.content = "edited"
