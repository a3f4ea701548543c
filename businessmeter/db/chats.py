# db/chats.py

from datetime import datetime
from typing import Any, Optional

from psycopg2.extras import Json

from businessmeter.db.models import Database, storage_call
from businessmeter.db.records import Chat, ChatMessage, Feedback
from businessmeter.db.results import StoreResult


class ChatRepository:
    """Chats and their messages."""

    def __init__(self, db: Database):
        self.db = db

    @storage_call
    def create_chat(self, user_id: Optional[int], title: str, mode: str = "consultant") -> StoreResult[Chat]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO chats (user_id, title, mode)
                VALUES (%s, %s, %s)
                RETURNING *
                """,
                (user_id, title, mode),
            )
            return StoreResult.success(Chat.from_row(cur.fetchone()))

    @storage_call
    def get_chat(self, chat_id: int) -> StoreResult[Chat]:
        with self.db.cursor() as cur:
            cur.execute("SELECT * FROM chats WHERE id = %s", (chat_id,))
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(Chat.from_row(row))

    @storage_call
    def chats_for_user(self, user_id: int) -> StoreResult[list[Chat]]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM chats
                WHERE user_id = %s
                ORDER BY updated_at DESC
                """,
                (user_id,),
            )
            rows = cur.fetchall()
        return StoreResult.success([Chat.from_row(r) for r in rows])

    @storage_call
    def recent_chats(self, since: datetime, limit: int = 50) -> StoreResult[list[Chat]]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM chats
                WHERE updated_at >= %s
                ORDER BY updated_at DESC
                LIMIT %s
                """,
                (since, limit),
            )
            rows = cur.fetchall()
        return StoreResult.success([Chat.from_row(r) for r in rows])

    @storage_call
    def all_chats_with_users(self) -> StoreResult[list[dict]]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT c.id, c.title, c.mode, c.created_at, c.updated_at,
                       c.user_id, u.name AS user_name, u.email AS user_email
                FROM chats c
                LEFT JOIN users u ON u.id = c.user_id
                ORDER BY c.updated_at DESC
                """
            )
            rows = cur.fetchall()

        return StoreResult.success([
            {
                "id": r["id"],
                "title": r["title"],
                "mode": r["mode"],
                "createdAt": r["created_at"].isoformat() if r["created_at"] else None,
                "updatedAt": r["updated_at"].isoformat() if r["updated_at"] else None,
                "userId": r["user_id"],
                "userName": r["user_name"],
                "userEmail": r["user_email"],
            }
            for r in rows
        ])

    @storage_call
    def add_message(self, chat_id: int, role: str, content: str, metadata: Optional[Any] = None) -> StoreResult[ChatMessage]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO messages (chat_id, role, content, metadata)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (chat_id, role, content, Json(metadata) if metadata is not None else None),
            )
            row = cur.fetchone()

            # bump the chat so batch learning picks it up
            cur.execute(
                "UPDATE chats SET updated_at = NOW() WHERE id = %s",
                (chat_id,),
            )

        return StoreResult.success(ChatMessage.from_row(row))

    @storage_call
    def messages_for_chat(self, chat_id: int) -> StoreResult[list[ChatMessage]]:
        """All messages of a chat, oldest first."""
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM messages
                WHERE chat_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (chat_id,),
            )
            rows = cur.fetchall()
        return StoreResult.success([ChatMessage.from_row(r) for r in rows])

    @storage_call
    def counts(self) -> StoreResult[dict]:
        with self.db.cursor() as cur:
            cur.execute("SELECT count(*)::int AS n FROM chats")
            chats = cur.fetchone()["n"]
            cur.execute("SELECT count(*)::int AS n FROM messages")
            messages = cur.fetchone()["n"]
        return StoreResult.success({"totalChats": chats, "totalMessages": messages})


class FeedbackRepository:

    def __init__(self, db: Database):
        self.db = db

    @storage_call
    def add(self, chat_id: int, rating: int, message_id: Optional[int] = None, comment: Optional[str] = None) -> StoreResult[Feedback]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO conversation_feedback (chat_id, message_id, rating, comment)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (chat_id, message_id, rating, comment),
            )
            return StoreResult.success(Feedback.from_row(cur.fetchone()))
