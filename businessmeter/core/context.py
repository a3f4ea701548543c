# core/context.py
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from businessmeter.chat_engine.llm import LLMClient
from businessmeter.core.config import (
    DATABASE_URL,
    KNOWLEDGE_DEDUP_POLICY,
    KNOWLEDGE_DEDUP_THRESHOLD,
    VERIFICATION_CODE_TTL_SECONDS,
)
from businessmeter.db.chats import ChatRepository, FeedbackRepository
from businessmeter.db.models import Database
from businessmeter.db.users import UserRepository
from businessmeter.knowledge.repository import KnowledgeRepository
from businessmeter.knowledge.service import KnowledgeService
from businessmeter.knowledge.similarity import build_duplicate_policy
from businessmeter.services.email import VerificationCodeStore, send_verification_email
from businessmeter.services.websearch import WebSearchClient
from businessmeter.tasks.engine import TaskEngine
from businessmeter.tasks.repository import TaskRepository


@dataclass
class AppContext:
    """Everything a request handler needs. Built once per app."""

    db: Database
    chats: ChatRepository
    users: UserRepository
    feedback: FeedbackRepository
    knowledge: KnowledgeService
    tasks: TaskEngine
    llm: LLMClient
    search: WebSearchClient
    codes: VerificationCodeStore
    send_code_email: Callable[[str, str], bool] = send_verification_email


def build_context() -> AppContext:
    db = Database(DATABASE_URL)
    chats = ChatRepository(db)

    return AppContext(
        db=db,
        chats=chats,
        users=UserRepository(db),
        feedback=FeedbackRepository(db),
        knowledge=KnowledgeService(
            KnowledgeRepository(db),
            chats,
            duplicate_policy=build_duplicate_policy(
                KNOWLEDGE_DEDUP_POLICY, KNOWLEDGE_DEDUP_THRESHOLD
            ),
        ),
        tasks=TaskEngine(TaskRepository(db)),
        llm=LLMClient(),
        search=WebSearchClient(),
        codes=VerificationCodeStore(VERIFICATION_CODE_TTL_SECONDS),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx
