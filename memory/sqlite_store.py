"""SQLite-based conversation store."""

import sqlite3
import json
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Tuple

from .models import Conversation, ConversationTurn
from .store import ConversationStore, PersistenceError, _UNSET

logger = logging.getLogger(__name__)


class SQLiteConversationStore(ConversationStore):
    """SQLite-based persistent conversation store."""

    def __init__(self, db_path: str = "data/conversations.db"):
        """
        Initialize SQLite conversation store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _cursor(self, action: str):
        """Yield a cursor, committing on success and raising PersistenceError on failure."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            logger.error(f"Failed to open {self.db_path} during {action}: {e}")
            raise PersistenceError(f"Failed to {action}: {e}") from e

        try:
            yield conn.cursor()
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error during {action}: {e}")
            raise PersistenceError(f"Failed to {action}: {e}") from e
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._cursor("initialize database") as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS conversations (
                    conversation_id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    current_topic TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS turns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    turn_id INTEGER NOT NULL,
                    role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
                    content TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    metadata TEXT,
                    FOREIGN KEY (conversation_id) REFERENCES conversations(conversation_id)
                        ON DELETE CASCADE
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_turns_conversation ON turns(conversation_id)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at)"
            )

        logger.info(f"Database initialized at {self.db_path}")

    def create_conversation(
        self,
        conversation_id: Optional[str] = None,
        title: str = "New Chat"
    ) -> Conversation:
        """
        Create a new conversation.

        Args:
            conversation_id: Unique conversation ID (generated when omitted)
            title: Display title

        Returns:
            Created Conversation object
        """
        conversation_id = conversation_id or str(uuid.uuid4())
        now = datetime.now()

        with self._cursor("create conversation") as cursor:
            cursor.execute(
                """
                INSERT INTO conversations (conversation_id, title, current_topic, created_at, updated_at)
                VALUES (?, ?, NULL, ?, ?)
                """,
                (conversation_id, title, now.isoformat(), now.isoformat())
            )

        return Conversation(
            conversation_id=conversation_id,
            title=title,
            created_at=now,
            updated_at=now,
            turns=[]
        )

    def create_turn(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[dict] = None
    ) -> ConversationTurn:
        """
        Add a turn to a conversation.

        Args:
            conversation_id: Conversation ID
            role: Role (user or assistant)
            content: Message content
            metadata: Optional metadata (context bag, generation mode)

        Returns:
            Created ConversationTurn object
        """
        # Validates role before touching the database
        turn = ConversationTurn(turn_id=0, role=role, content=content, metadata=metadata)

        with self._cursor("create turn") as cursor:
            last_turn_id = self._last_turn_id(cursor, conversation_id)
            turn = turn.model_copy(update={"turn_id": last_turn_id + 1})
            self._insert_turn(cursor, conversation_id, turn)

            cursor.execute(
                "UPDATE conversations SET updated_at = ? WHERE conversation_id = ?",
                (turn.created_at.isoformat(), conversation_id)
            )

        return turn

    def save_exchange(
        self,
        conversation_id: str,
        user_content: str,
        assistant_content: str,
        assistant_metadata: Optional[dict] = None,
        current_topic: Optional[str] = None,
        first_title: Optional[str] = None
    ) -> Tuple[ConversationTurn, ConversationTurn]:
        """
        Store one exchange in a single transaction.

        Args:
            conversation_id: Conversation ID
            user_content: The user's message
            assistant_content: The reply
            assistant_metadata: Context bag and generation details for the reply
            current_topic: Topic after this exchange (overwrites the old one)
            first_title: Title to set when this is the conversation's first exchange

        Returns:
            The stored user and assistant turns
        """
        now = datetime.now()
        user_turn = ConversationTurn(turn_id=0, role="user", content=user_content, created_at=now)
        assistant_turn = ConversationTurn(
            turn_id=0,
            role="assistant",
            content=assistant_content,
            created_at=now,
            metadata=assistant_metadata
        )

        with self._cursor("save exchange") as cursor:
            last_turn_id = self._last_turn_id(cursor, conversation_id)
            user_turn = user_turn.model_copy(update={"turn_id": last_turn_id + 1})
            assistant_turn = assistant_turn.model_copy(update={"turn_id": last_turn_id + 2})

            self._insert_turn(cursor, conversation_id, user_turn)
            self._insert_turn(cursor, conversation_id, assistant_turn)

            assignments = ["updated_at = ?", "current_topic = ?"]
            values: list = [now.isoformat(), current_topic]
            if first_title and last_turn_id == 0:
                assignments.append("title = ?")
                values.append(first_title)
            cursor.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE conversation_id = ?",
                (*values, conversation_id)
            )

        return user_turn, assistant_turn

    @staticmethod
    def _last_turn_id(cursor: sqlite3.Cursor, conversation_id: str) -> int:
        """Highest turn id so far; raises PersistenceError for unknown conversations."""
        cursor.execute(
            "SELECT 1 FROM conversations WHERE conversation_id = ?",
            (conversation_id,)
        )
        if cursor.fetchone() is None:
            raise PersistenceError(f"Conversation not found: {conversation_id}")

        cursor.execute(
            "SELECT MAX(turn_id) FROM turns WHERE conversation_id = ?",
            (conversation_id,)
        )
        return cursor.fetchone()[0] or 0

    @staticmethod
    def _insert_turn(cursor: sqlite3.Cursor, conversation_id: str, turn: ConversationTurn):
        cursor.execute(
            """
            INSERT INTO turns (conversation_id, turn_id, role, content, created_at, metadata)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                conversation_id,
                turn.turn_id,
                turn.role,
                turn.content,
                turn.created_at.isoformat(),
                json.dumps(turn.metadata, default=str) if turn.metadata else None,
            )
        )

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """
        Get a conversation with all turns.

        Args:
            conversation_id: Conversation ID

        Returns:
            Conversation object or None if not found
        """
        with self._cursor("get conversation") as cursor:
            cursor.execute(
                "SELECT * FROM conversations WHERE conversation_id = ?",
                (conversation_id,)
            )
            conv_row = cursor.fetchone()

        if not conv_row:
            return None

        conversation = self._row_to_conversation(conv_row)
        conversation.turns = self.list_turns(conversation_id)
        return conversation

    def list_turns(self, conversation_id: str) -> List[ConversationTurn]:
        """
        Get all turns of a conversation in order.

        Args:
            conversation_id: Conversation ID

        Returns:
            List of ConversationTurn objects, oldest first
        """
        with self._cursor("list turns") as cursor:
            cursor.execute(
                """
                SELECT turn_id, role, content, created_at, metadata
                FROM turns
                WHERE conversation_id = ?
                ORDER BY turn_id
                """,
                (conversation_id,)
            )
            rows = cursor.fetchall()

        return [self._row_to_turn(row) for row in rows]

    def update_conversation(
        self,
        conversation_id: str,
        current_topic=_UNSET,
        title=_UNSET
    ) -> Optional[Conversation]:
        """
        Overwrite a conversation's topic and/or title.

        Args:
            conversation_id: Conversation ID
            current_topic: New topic (None clears it)
            title: New title

        Returns:
            Updated Conversation (without turns) or None if not found
        """
        assignments = ["updated_at = ?"]
        values: list = [datetime.now().isoformat()]
        if current_topic is not _UNSET:
            assignments.append("current_topic = ?")
            values.append(current_topic)
        if title is not _UNSET:
            assignments.append("title = ?")
            values.append(title)

        with self._cursor("update conversation") as cursor:
            cursor.execute(
                f"UPDATE conversations SET {', '.join(assignments)} WHERE conversation_id = ?",
                (*values, conversation_id)
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(
                "SELECT * FROM conversations WHERE conversation_id = ?",
                (conversation_id,)
            )
            row = cursor.fetchone()

        return self._row_to_conversation(row)

    def list_conversations(self, limit: int = 50) -> List[Conversation]:
        """
        List conversations, most recently updated first.

        Args:
            limit: Maximum number of conversations

        Returns:
            List of Conversation objects (without turns)
        """
        with self._cursor("list conversations") as cursor:
            cursor.execute(
                """
                SELECT * FROM conversations
                ORDER BY updated_at DESC
                LIMIT ?
                """,
                (limit,)
            )
            rows = cursor.fetchall()

        return [self._row_to_conversation(row) for row in rows]

    def delete_conversation(self, conversation_id: str) -> bool:
        """
        Delete a conversation and its turns.

        Args:
            conversation_id: Conversation ID

        Returns:
            True if a conversation was deleted
        """
        with self._cursor("delete conversation") as cursor:
            cursor.execute("DELETE FROM turns WHERE conversation_id = ?", (conversation_id,))
            cursor.execute(
                "DELETE FROM conversations WHERE conversation_id = ?",
                (conversation_id,)
            )
            deleted = cursor.rowcount > 0

        return deleted

    @staticmethod
    def _row_to_conversation(row) -> Conversation:
        return Conversation(
            conversation_id=row["conversation_id"],
            title=row["title"],
            current_topic=row["current_topic"],
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else datetime.now(),
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else datetime.now(),
            turns=[]
        )

    @staticmethod
    def _row_to_turn(row) -> ConversationTurn:
        return ConversationTurn(
            turn_id=row["turn_id"],
            role=row["role"],
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else datetime.now(),
            metadata=json.loads(row["metadata"]) if row["metadata"] else None
        )
