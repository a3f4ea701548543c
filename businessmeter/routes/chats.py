# routes/chats.py
import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from businessmeter.core.context import AppContext, get_context
from businessmeter.routes.errors import unwrap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

CHAT_NOT_FOUND = "چت یافت نشد"


class CreateChatPayload(BaseModel):
    userId: Optional[int] = None
    title: str
    mode: str = "consultant"


class MessagePayload(BaseModel):
    chatId: int
    role: Literal["user", "model"]
    content: str
    metadata: Optional[Any] = None


class FeedbackPayload(BaseModel):
    chatId: int
    messageId: Optional[int] = None
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


# =============================================================
# CHATS
# =============================================================

@router.post("/chats")
def create_chat(payload: CreateChatPayload, ctx: AppContext = Depends(get_context)):
    chat = unwrap(ctx.chats.create_chat(payload.userId, payload.title, payload.mode))
    return chat.to_dict()


@router.get("/chats/user/{user_id}")
def chats_for_user(user_id: int, ctx: AppContext = Depends(get_context)):
    return [c.to_dict() for c in unwrap(ctx.chats.chats_for_user(user_id))]


@router.get("/chats/{chat_id}")
def get_chat(chat_id: int, ctx: AppContext = Depends(get_context)):
    chat = unwrap(ctx.chats.get_chat(chat_id), CHAT_NOT_FOUND)
    messages = unwrap(ctx.chats.messages_for_chat(chat_id))

    return {
        **chat.to_dict(),
        "messages": [m.to_dict() for m in messages],
    }


@router.get("/chats/{chat_id}/tasks")
def chat_tasks(chat_id: int, ctx: AppContext = Depends(get_context)):
    unwrap(ctx.chats.get_chat(chat_id), CHAT_NOT_FOUND)
    return [t.to_dict() for t in ctx.tasks.tasks_for_chat(chat_id)]


# =============================================================
# MESSAGES
# =============================================================

@router.post("/messages")
def add_message(payload: MessagePayload, ctx: AppContext = Depends(get_context)):
    message = unwrap(
        ctx.chats.add_message(payload.chatId, payload.role, payload.content, payload.metadata)
    )

    # model turns hand out tasks, user turns report progress on them
    if payload.role == "model":
        changed = ctx.tasks.record_model_output(payload.chatId, payload.content)
    else:
        changed = ctx.tasks.record_user_message(payload.chatId, payload.content)

    if changed:
        logger.info("📋 %s task(s) touched by message %s", len(changed), message.id)

    return {
        **message.to_dict(),
        "tasks": [t.to_dict() for t in changed],
    }


# =============================================================
# FEEDBACK
# =============================================================

@router.post("/feedback")
def add_feedback(payload: FeedbackPayload, ctx: AppContext = Depends(get_context)):
    feedback = unwrap(
        ctx.feedback.add(payload.chatId, payload.rating, payload.messageId, payload.comment)
    )
    return feedback.to_dict()
