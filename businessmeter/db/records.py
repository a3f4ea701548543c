# db/records.py
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class User:
    id: int
    name: str
    email: str
    password_hash: str
    has_premium: bool = False
    free_messages_used: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "User":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            has_premium=bool(row.get("has_premium")),
            free_messages_used=row.get("free_messages_used") or 0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict:
        # never expose the hash
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "hasPremium": self.has_premium,
            "freeMessagesUsed": self.free_messages_used,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class Chat:
    id: int
    user_id: Optional[int]
    title: str
    mode: str = "consultant"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Chat":
        return cls(
            id=row["id"],
            user_id=row.get("user_id"),
            title=row["title"],
            mode=row.get("mode") or "consultant",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "mode": self.mode,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class ChatMessage:
    id: int
    chat_id: int
    role: str
    content: str
    metadata: Optional[Any] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "ChatMessage":
        return cls(
            id=row["id"],
            chat_id=row["chat_id"],
            role=row["role"],
            content=row["content"],
            metadata=row.get("metadata"),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "role": self.role,
            "content": self.content,
            "metadata": self.metadata,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class Feedback:
    id: int
    chat_id: int
    rating: int
    message_id: Optional[int] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Feedback":
        return cls(
            id=row["id"],
            chat_id=row["chat_id"],
            rating=row["rating"],
            message_id=row.get("message_id"),
            comment=row.get("comment"),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "messageId": self.message_id,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": _iso(self.created_at),
        }
