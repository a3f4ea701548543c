# routes/chat.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError
from starlette.background import BackgroundTask

from businessmeter.chat_engine.llm import UpstreamError
from businessmeter.chat_engine.relay import (
    RelayRequestError,
    build_system_prompt,
    build_upstream_messages,
    relay_stream,
    split_conversation,
)
from businessmeter.core.context import AppContext, get_context

logger = logging.getLogger(__name__)

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ChatTurn(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatTurn]
    expertId: Optional[str] = None
    userQuestion: Optional[str] = None
    chatId: Optional[int] = None
    deepSearch: bool = False


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


@router.post("/api/chat")
async def chat(request: Request, ctx: AppContext = Depends(get_context)):
    # received
    try:
        payload = await request.json()
    except ValueError:
        return _bad_request("Invalid JSON body")

    try:
        body = ChatRequest.model_validate(payload)
    except ValidationError:
        return _bad_request("messages array is required")

    try:
        history, new_message = split_conversation(
            [m.model_dump() for m in body.messages],
            body.userQuestion,
        )
    except RelayRequestError as e:
        return _bad_request(str(e))

    # forwarding
    question = body.userQuestion or new_message
    system_prompt = await build_system_prompt(
        ctx,
        question,
        expert_id=body.expertId,
        chat_id=body.chatId,
        deep_search=body.deepSearch,
    )
    upstream_messages = build_upstream_messages(system_prompt, history, new_message)

    try:
        upstream = await ctx.llm.open_stream(upstream_messages)
    except UpstreamError as e:
        return JSONResponse(status_code=502, content={"error": str(e)})

    # streaming
    return StreamingResponse(
        relay_stream(upstream, request.is_disconnected),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
        background=BackgroundTask(upstream.aclose),
    )
