# tasks/repository.py

from businessmeter.db.models import Database, storage_call
from businessmeter.db.results import StoreResult
from businessmeter.tasks.models import Task, TaskStatus


class TaskRepository:

    def __init__(self, db: Database):
        self.db = db

    @storage_call
    def insert(self, chat_id: int, description: str) -> StoreResult[Task]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO tasks (chat_id, description, status)
                VALUES (%s, %s, %s)
                RETURNING *
                """,
                (chat_id, description, TaskStatus.pending.value),
            )
            return StoreResult.success(Task.from_row(cur.fetchone()))

    @storage_call
    def get(self, task_id: int) -> StoreResult[Task]:
        with self.db.cursor() as cur:
            cur.execute("SELECT * FROM tasks WHERE id = %s", (task_id,))
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(Task.from_row(row))

    @storage_call
    def for_chat(self, chat_id: int, limit: int = 20) -> StoreResult[list[Task]]:
        """Newest first."""
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM tasks
                WHERE chat_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (chat_id, limit),
            )
            rows = cur.fetchall()
        return StoreResult.success([Task.from_row(r) for r in rows])

    @storage_call
    def update_status(self, task_id: int, status: TaskStatus) -> StoreResult[Task]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                UPDATE tasks
                SET status = %s,
                    updated_at = NOW(),
                    completed_at = CASE
                        WHEN %s = 'completed' AND completed_at IS NULL THEN NOW()
                        ELSE completed_at
                    END
                WHERE id = %s
                RETURNING *
                """,
                (status.value, status.value, task_id),
            )
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(Task.from_row(row))
