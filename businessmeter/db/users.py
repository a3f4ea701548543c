# db/users.py

from businessmeter.db.models import Database, storage_call
from businessmeter.db.records import User
from businessmeter.db.results import StoreResult


class UserRepository:

    def __init__(self, db: Database):
        self.db = db

    @storage_call
    def create(self, name: str, email: str, password_hash: str) -> StoreResult[User]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO users (name, email, password_hash)
                VALUES (%s, %s, %s)
                RETURNING *
                """,
                (name, email, password_hash),
            )
            return StoreResult.success(User.from_row(cur.fetchone()))

    @storage_call
    def by_email(self, email: str) -> StoreResult[User]:
        with self.db.cursor() as cur:
            cur.execute("SELECT * FROM users WHERE email = %s", (email,))
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(User.from_row(row))

    @storage_call
    def set_premium(self, user_id: int, has_premium: bool) -> StoreResult[User]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET has_premium = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (has_premium, user_id),
            )
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(User.from_row(row))

    @storage_call
    def increment_free_messages(self, user_id: int) -> StoreResult[User]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET free_messages_used = free_messages_used + 1, updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (user_id,),
            )
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(User.from_row(row))

    @storage_call
    def list_all(self) -> StoreResult[list[User]]:
        with self.db.cursor() as cur:
            cur.execute("SELECT * FROM users ORDER BY created_at DESC")
            rows = cur.fetchall()
        return StoreResult.success([User.from_row(r) for r in rows])

    @storage_call
    def delete(self, user_id: int) -> StoreResult[None]:
        """Delete a user with their chats and messages."""
        with self.db.cursor() as cur:
            cur.execute(
                """
                DELETE FROM conversation_feedback
                WHERE chat_id IN (SELECT id FROM chats WHERE user_id = %s)
                """,
                (user_id,),
            )
            cur.execute(
                """
                DELETE FROM messages
                WHERE chat_id IN (SELECT id FROM chats WHERE user_id = %s)
                """,
                (user_id,),
            )
            cur.execute("DELETE FROM chats WHERE user_id = %s", (user_id,))
            cur.execute("DELETE FROM users WHERE id = %s", (user_id,))
            deleted = cur.rowcount

        if not deleted:
            return StoreResult.missing()
        return StoreResult.success()

    @storage_call
    def counts(self) -> StoreResult[dict]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT count(*)::int AS total,
                       count(*) FILTER (WHERE has_premium)::int AS premium
                FROM users
                """
            )
            row = cur.fetchone()
        return StoreResult.success({"totalUsers": row["total"], "premiumUsers": row["premium"]})
