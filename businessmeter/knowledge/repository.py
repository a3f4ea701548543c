# knowledge/repository.py
from typing import Optional

from businessmeter.db.models import Database, storage_call
from businessmeter.db.results import StoreResult
from businessmeter.knowledge.classifier import Category
from businessmeter.knowledge.models import ConversationPair, LearnedKnowledge


class KnowledgeRepository:
    """learned_knowledge table. Counters are bumped with per-row UPDATEs."""

    def __init__(self, db: Database):
        self.db = db

    @storage_call
    def find_by_question(self, question: str) -> StoreResult[LearnedKnowledge]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM learned_knowledge
                WHERE question = %s
                LIMIT 1
                """,
                (question,),
            )
            row = cur.fetchone()
        if not row:
            return StoreResult.missing()
        return StoreResult.success(LearnedKnowledge.from_row(row))

    @storage_call
    def insert(self, pair: ConversationPair, source_message_id: Optional[int] = None) -> StoreResult[LearnedKnowledge]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                INSERT INTO learned_knowledge
                (question, answer, category, quality_score, usage_count, source_message_id)
                VALUES (%s, %s, %s, 1, 0, %s)
                RETURNING *
                """,
                (pair.question, pair.answer, pair.category.value, source_message_id),
            )
            return StoreResult.success(LearnedKnowledge.from_row(cur.fetchone()))

    @storage_call
    def increment_quality(self, knowledge_id: int) -> StoreResult[None]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                UPDATE learned_knowledge
                SET quality_score = quality_score + 1,
                    updated_at = NOW()
                WHERE id = %s
                """,
                (knowledge_id,),
            )
            updated = cur.rowcount
        return StoreResult.success() if updated else StoreResult.missing()

    @storage_call
    def increment_usage(self, knowledge_id: int) -> StoreResult[None]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                UPDATE learned_knowledge
                SET usage_count = usage_count + 1,
                    updated_at = NOW()
                WHERE id = %s
                """,
                (knowledge_id,),
            )
            updated = cur.rowcount
        return StoreResult.success() if updated else StoreResult.missing()

    @storage_call
    def top_for_category(self, category: Category, limit: int = 5) -> StoreResult[list[LearnedKnowledge]]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT *
                FROM learned_knowledge
                WHERE category = %s
                  AND quality_score >= 1
                ORDER BY quality_score DESC, usage_count DESC
                LIMIT %s
                """,
                (category.value, limit),
            )
            rows = cur.fetchall()
        return StoreResult.success([LearnedKnowledge.from_row(r) for r in rows])

    @storage_call
    def list_pairs(self, category: Optional[Category] = None, limit: Optional[int] = 100) -> StoreResult[list[LearnedKnowledge]]:
        """Newest first. limit=None means no limit."""
        with self.db.cursor() as cur:
            if category is None:
                cur.execute(
                    """
                    SELECT *
                    FROM learned_knowledge
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
            else:
                cur.execute(
                    """
                    SELECT *
                    FROM learned_knowledge
                    WHERE category = %s
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (category.value, limit),
                )
            rows = cur.fetchall()
        return StoreResult.success([LearnedKnowledge.from_row(r) for r in rows])

    @storage_call
    def delete(self, knowledge_id: int) -> StoreResult[None]:
        with self.db.cursor() as cur:
            cur.execute("DELETE FROM learned_knowledge WHERE id = %s", (knowledge_id,))
            deleted = cur.rowcount
        return StoreResult.success() if deleted else StoreResult.missing()

    @storage_call
    def stats(self) -> StoreResult[dict]:
        with self.db.cursor() as cur:
            cur.execute(
                """
                SELECT count(*)::int AS total,
                       coalesce(avg(quality_score), 0)::int AS avg_quality,
                       coalesce(sum(usage_count), 0)::int AS total_usage
                FROM learned_knowledge
                """
            )
            totals = cur.fetchone()

            cur.execute(
                """
                SELECT category, count(*)::int AS count
                FROM learned_knowledge
                GROUP BY category
                """
            )
            by_category = cur.fetchall()

        return StoreResult.success({
            "totalKnowledge": totals["total"],
            "averageQuality": totals["avg_quality"],
            "totalUsage": totals["total_usage"],
            "byCategory": [
                {"category": r["category"], "count": r["count"]}
                for r in by_category
            ],
        })

    def list_by_category(self, category: Category, limit: Optional[int] = 100) -> StoreResult[list[LearnedKnowledge]]:
        return self.list_pairs(category, limit)

    def list_all(self, limit: Optional[int] = None) -> StoreResult[list[LearnedKnowledge]]:
        return self.list_pairs(None, limit)
