# knowledge/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from businessmeter.knowledge.classifier import Category


@dataclass
class ConversationPair:
    question: str
    answer: str
    category: Category


@dataclass
class LearnedKnowledge:
    id: int
    question: str
    answer: str
    category: Category
    quality_score: int
    usage_count: int
    source_message_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "LearnedKnowledge":
        return cls(
            id=row["id"],
            question=row["question"],
            answer=row["answer"],
            category=Category.parse(row["category"]),
            quality_score=row["quality_score"],
            usage_count=row["usage_count"],
            source_message_id=row.get("source_message_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "category": self.category.value,
            "categoryLabel": self.category.label,
            "qualityScore": self.quality_score,
            "usageCount": self.usage_count,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
