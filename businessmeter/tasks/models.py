# tasks/models.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# completed and cancelled are terminal
STATUS_RANK = {
    TaskStatus.pending: 0,
    TaskStatus.in_progress: 1,
    TaskStatus.completed: 2,
    TaskStatus.cancelled: 2,
}


def is_forward(current: TaskStatus, new: TaskStatus) -> bool:
    return STATUS_RANK[new] > STATUS_RANK[current]


@dataclass
class Task:
    id: int
    chat_id: int
    description: str
    status: TaskStatus = TaskStatus.pending
    metadata: Optional[Any] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Task":
        return cls(
            id=row["id"],
            chat_id=row["chat_id"],
            description=row["description"],
            status=TaskStatus(row["status"]),
            metadata=row.get("metadata"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            completed_at=row.get("completed_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "description": self.description,
            "status": self.status.value,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class StatusUpdate:
    task_id: int
    status: TaskStatus
