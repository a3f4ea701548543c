# db/models.py

import functools
import logging
from contextlib import contextmanager
from typing import Optional

import psycopg2
import psycopg2.extras

from businessmeter.db.results import StoreResult

logger = logging.getLogger(__name__)


class StorageUnavailable(RuntimeError):
    """Raised when no database is configured or it cannot be reached."""


STORAGE_ERRORS = (psycopg2.Error, StorageUnavailable)


class Database:
    """Connection factory around DATABASE_URL. One connection per operation."""

    def __init__(self, url: Optional[str]):
        self.url = url

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def get_conn(self):
        """Open a new PostgreSQL connection with dict rows."""
        if not self.url:
            raise StorageUnavailable("DATABASE_URL is not set")
        try:
            return psycopg2.connect(
                self.url,
                cursor_factory=psycopg2.extras.RealDictCursor,
            )
        except psycopg2.OperationalError as exc:
            raise StorageUnavailable(str(exc)) from exc

    @contextmanager
    def cursor(self):
        conn = self.get_conn()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
            cur.close()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ping(self) -> bool:
        try:
            with self.cursor() as cur:
                cur.execute("SELECT 1")
            return True
        except STORAGE_ERRORS:
            return False


def storage_call(fn):
    """Turn storage exceptions of a repository method into StoreResult.failed."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except STORAGE_ERRORS as exc:
            logger.warning("Storage error in %s: %s", fn.__qualname__, exc)
            return StoreResult.failed(str(exc))

    return wrapper


def init_db(db: Database):
    """Create the tables if they do not exist yet."""
    with db.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                has_premium BOOLEAN NOT NULL DEFAULT FALSE,
                free_messages_used INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS chats (
                id SERIAL PRIMARY KEY,
                user_id INTEGER REFERENCES users(id),
                title TEXT NOT NULL,
                mode TEXT NOT NULL DEFAULT 'consultant',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

        # role is 'user' or 'model'
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                id SERIAL PRIMARY KEY,
                chat_id INTEGER REFERENCES chats(id),
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                metadata JSONB,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS learned_knowledge (
                id SERIAL PRIMARY KEY,
                question TEXT NOT NULL,
                answer TEXT NOT NULL,
                category TEXT NOT NULL,
                quality_score INTEGER NOT NULL DEFAULT 1,
                usage_count INTEGER NOT NULL DEFAULT 0,
                source_message_id INTEGER,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS learned_knowledge_question_idx
            ON learned_knowledge (question);
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS conversation_feedback (
                id SERIAL PRIMARY KEY,
                chat_id INTEGER REFERENCES chats(id),
                message_id INTEGER REFERENCES messages(id),
                rating INTEGER NOT NULL,
                comment TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id SERIAL PRIMARY KEY,
                chat_id INTEGER NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
                description TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                metadata JSONB,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                completed_at TIMESTAMPTZ
            );
            """
        )

    logger.info("✅ Database tables ready")
