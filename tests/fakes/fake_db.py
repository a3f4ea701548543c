"""In-memory stand-ins for the repositories, the upstream LLM and web search."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import anyio

from businessmeter.chat_engine.llm import UpstreamError
from businessmeter.core.context import AppContext
from businessmeter.db.records import Chat, ChatMessage, Feedback, User
from businessmeter.db.results import StoreResult
from businessmeter.knowledge.models import ConversationPair, LearnedKnowledge
from businessmeter.knowledge.service import KnowledgeService
from businessmeter.services.email import VerificationCodeStore
from businessmeter.tasks.engine import TaskEngine
from businessmeter.tasks.models import Task, TaskStatus

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic-ish clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def _failed():
    return StoreResult.failed("database unavailable")


class _Failable:
    """`fail = True` turns every call into a storage error."""

    fail = False


class FakeDatabase:

    def __init__(self, configured: bool = False, reachable: bool = False):
        self.configured = configured
        self.reachable = reachable

    def ping(self) -> bool:
        return self.reachable


# ──────────────────────────────────────────────────────────────────────
# Chats / messages / feedback
# ──────────────────────────────────────────────────────────────────────


class FakeChatRepository(_Failable):

    def __init__(self):
        self.chats: Dict[int, Chat] = {}
        self.messages: List[ChatMessage] = []
        self._clock = T0

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def create_chat(self, user_id: Optional[int], title: str, mode: str = "consultant"):
        if self.fail:
            return _failed()
        now = self._tick()
        chat = Chat(
            id=len(self.chats) + 1,
            user_id=user_id,
            title=title,
            mode=mode,
            created_at=now,
            updated_at=now,
        )
        self.chats[chat.id] = chat
        return StoreResult.success(chat)

    def get_chat(self, chat_id: int):
        if self.fail:
            return _failed()
        chat = self.chats.get(chat_id)
        return StoreResult.success(chat) if chat else StoreResult.missing()

    def chats_for_user(self, user_id: int):
        if self.fail:
            return _failed()
        rows = [c for c in self.chats.values() if c.user_id == user_id]
        rows.sort(key=lambda c: c.updated_at, reverse=True)
        return StoreResult.success(rows)

    def recent_chats(self, since: datetime, limit: int = 50):
        if self.fail:
            return _failed()
        rows = [c for c in self.chats.values() if c.updated_at >= since]
        rows.sort(key=lambda c: c.updated_at, reverse=True)
        return StoreResult.success(rows[:limit])

    def all_chats_with_users(self):
        if self.fail:
            return _failed()
        return StoreResult.success([c.to_dict() for c in self.chats.values()])

    def add_message(self, chat_id: int, role: str, content: str, metadata: Optional[Any] = None):
        if self.fail:
            return _failed()
        now = self._tick()
        message = ChatMessage(
            id=len(self.messages) + 1,
            chat_id=chat_id,
            role=role,
            content=content,
            metadata=metadata,
            created_at=now,
        )
        self.messages.append(message)
        if chat_id in self.chats:
            self.chats[chat_id].updated_at = now
        return StoreResult.success(message)

    def messages_for_chat(self, chat_id: int):
        if self.fail:
            return _failed()
        return StoreResult.success([m for m in self.messages if m.chat_id == chat_id])

    def counts(self):
        if self.fail:
            return _failed()
        return StoreResult.success({
            "totalChats": len(self.chats),
            "totalMessages": len(self.messages),
        })


class FakeFeedbackRepository(_Failable):

    def __init__(self):
        self.rows: List[Feedback] = []

    def add(self, chat_id: int, rating: int, message_id: Optional[int] = None, comment: Optional[str] = None):
        if self.fail:
            return _failed()
        feedback = Feedback(
            id=len(self.rows) + 1,
            chat_id=chat_id,
            rating=rating,
            message_id=message_id,
            comment=comment,
            created_at=T0,
        )
        self.rows.append(feedback)
        return StoreResult.success(feedback)


class FakeUserRepository(_Failable):

    def __init__(self):
        self.users: Dict[int, User] = {}
        self._next_id = 1

    def create(self, name: str, email: str, password_hash: str):
        if self.fail:
            return _failed()
        user = User(
            id=self._next_id,
            name=name,
            email=email,
            password_hash=password_hash,
            created_at=T0,
        )
        self._next_id += 1
        self.users[user.id] = user
        return StoreResult.success(user)

    def by_email(self, email: str):
        if self.fail:
            return _failed()
        user = next((u for u in self.users.values() if u.email == email), None)
        return StoreResult.success(user) if user else StoreResult.missing()

    def set_premium(self, user_id: int, has_premium: bool):
        if self.fail:
            return _failed()
        user = self.users.get(user_id)
        if not user:
            return StoreResult.missing()
        user.has_premium = has_premium
        return StoreResult.success(user)

    def increment_free_messages(self, user_id: int):
        if self.fail:
            return _failed()
        user = self.users.get(user_id)
        if not user:
            return StoreResult.missing()
        user.free_messages_used += 1
        return StoreResult.success(user)

    def list_all(self):
        if self.fail:
            return _failed()
        return StoreResult.success(list(self.users.values()))

    def delete(self, user_id: int):
        if self.fail:
            return _failed()
        if self.users.pop(user_id, None) is None:
            return StoreResult.missing()
        return StoreResult.success()

    def counts(self):
        if self.fail:
            return _failed()
        return StoreResult.success({
            "totalUsers": len(self.users),
            "premiumUsers": sum(1 for u in self.users.values() if u.has_premium),
        })


# ──────────────────────────────────────────────────────────────────────
# Knowledge / tasks
# ──────────────────────────────────────────────────────────────────────


class FakeKnowledgeRepository(_Failable):

    def __init__(self):
        self.rows: Dict[int, LearnedKnowledge] = {}
        self._next_id = 1

    def find_by_question(self, question: str):
        if self.fail:
            return _failed()
        row = next((r for r in self.rows.values() if r.question == question), None)
        return StoreResult.success(row) if row else StoreResult.missing()

    def insert(self, pair: ConversationPair, source_message_id: Optional[int] = None):
        if self.fail:
            return _failed()
        row = LearnedKnowledge(
            id=self._next_id,
            question=pair.question,
            answer=pair.answer,
            category=pair.category,
            quality_score=1,
            usage_count=0,
            source_message_id=source_message_id,
            created_at=T0 + timedelta(seconds=self._next_id),
        )
        self._next_id += 1
        self.rows[row.id] = row
        return StoreResult.success(row)

    def increment_quality(self, knowledge_id: int):
        if self.fail:
            return _failed()
        if knowledge_id not in self.rows:
            return StoreResult.missing()
        self.rows[knowledge_id].quality_score += 1
        return StoreResult.success()

    def increment_usage(self, knowledge_id: int):
        if self.fail:
            return _failed()
        if knowledge_id not in self.rows:
            return StoreResult.missing()
        self.rows[knowledge_id].usage_count += 1
        return StoreResult.success()

    def top_for_category(self, category, limit: int = 5):
        if self.fail:
            return _failed()
        rows = [
            r for r in self.rows.values()
            if r.category == category and r.quality_score >= 1
        ]
        rows.sort(key=lambda r: (r.quality_score, r.usage_count), reverse=True)
        return StoreResult.success(rows[:limit])

    def list_pairs(self, category=None, limit: Optional[int] = 100):
        if self.fail:
            return _failed()
        rows = [r for r in self.rows.values() if category is None or r.category == category]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return StoreResult.success(rows if limit is None else rows[:limit])

    def list_by_category(self, category, limit: Optional[int] = 100):
        return self.list_pairs(category, limit)

    def list_all(self, limit: Optional[int] = None):
        return self.list_pairs(None, limit)

    def delete(self, knowledge_id: int):
        if self.fail:
            return _failed()
        if self.rows.pop(knowledge_id, None) is None:
            return StoreResult.missing()
        return StoreResult.success()

    def stats(self):
        if self.fail:
            return _failed()
        rows = list(self.rows.values())
        by_category: Dict[str, int] = {}
        for r in rows:
            by_category[r.category.value] = by_category.get(r.category.value, 0) + 1
        return StoreResult.success({
            "totalKnowledge": len(rows),
            "averageQuality": round(sum(r.quality_score for r in rows) / len(rows)) if rows else 0,
            "totalUsage": sum(r.usage_count for r in rows),
            "byCategory": [{"category": k, "count": v} for k, v in by_category.items()],
        })


class FakeTaskRepository(_Failable):

    def __init__(self):
        self.rows: Dict[int, Task] = {}
        self._next_id = 1

    def insert(self, chat_id: int, description: str):
        if self.fail:
            return _failed()
        task = Task(
            id=self._next_id,
            chat_id=chat_id,
            description=description,
            created_at=T0 + timedelta(seconds=self._next_id),
        )
        self._next_id += 1
        self.rows[task.id] = task
        return StoreResult.success(task)

    def get(self, task_id: int):
        if self.fail:
            return _failed()
        task = self.rows.get(task_id)
        return StoreResult.success(task) if task else StoreResult.missing()

    def for_chat(self, chat_id: int, limit: int = 20):
        if self.fail:
            return _failed()
        rows = [t for t in self.rows.values() if t.chat_id == chat_id]
        rows.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return StoreResult.success(rows[:limit])

    def update_status(self, task_id: int, status: TaskStatus):
        if self.fail:
            return _failed()
        task = self.rows.get(task_id)
        if not task:
            return StoreResult.missing()
        task.status = status
        if status == TaskStatus.completed and task.completed_at is None:
            task.completed_at = T0
        return StoreResult.success(task)


# ──────────────────────────────────────────────────────────────────────
# Upstream LLM / search
# ──────────────────────────────────────────────────────────────────────


class FakeStream:
    """Upstream response that yields canned byte chunks."""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None, stall: float = 0):
        self.chunks = list(chunks)
        self.error = error
        # seconds to hang after the last chunk
        self.stall = stall
        self.closed = False
        self.close_calls = 0
        self.yielded = 0

    async def iter_bytes(self):
        for chunk in self.chunks:
            self.yielded += 1
            yield chunk
        if self.stall:
            await anyio.sleep(self.stall)
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.close_calls += 1
        self.closed = True


class FakeLLM:

    def __init__(self, stream: Optional[FakeStream] = None, open_error: Optional[UpstreamError] = None):
        self.stream = stream or FakeStream([b"data: [DONE]\n\n"])
        self.open_error = open_error
        self.calls: List[List[dict]] = []

    async def open_stream(self, messages: List[dict]):
        self.calls.append(messages)
        if self.open_error is not None:
            raise self.open_error
        return self.stream

    async def aclose(self):
        pass


class FakeSearch:

    def __init__(self, results: Optional[List[dict]] = None):
        self.results = results or []
        self.queries: List[str] = []

    def search(self, query: str, num_results: int = 5):
        self.queries.append(query)
        return self.results


def sse_chunk(content: str) -> bytes:
    """One upstream delta line, as the chat-completions API sends it."""
    packet = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(packet, ensure_ascii=False)}\n\n".encode("utf-8")


def build_fake_context(**overrides) -> AppContext:
    chats = overrides.pop("chats", FakeChatRepository())
    knowledge_repo = overrides.pop("knowledge_repo", FakeKnowledgeRepository())
    task_repo = overrides.pop("task_repo", FakeTaskRepository())

    sent: List[tuple] = []

    def send_code_email(email: str, code: str) -> bool:
        sent.append((email, code))
        return True

    ctx = AppContext(
        db=overrides.pop("db", FakeDatabase()),
        chats=chats,
        users=overrides.pop("users", FakeUserRepository()),
        feedback=overrides.pop("feedback", FakeFeedbackRepository()),
        knowledge=overrides.pop("knowledge", KnowledgeService(knowledge_repo, chats)),
        tasks=overrides.pop("tasks", TaskEngine(task_repo)),
        llm=overrides.pop("llm", FakeLLM()),
        search=overrides.pop("search", FakeSearch()),
        codes=overrides.pop("codes", VerificationCodeStore(600, clock=FakeClock())),
        send_code_email=overrides.pop("send_code_email", send_code_email),
    )
    ctx.sent_emails = sent
    return ctx
