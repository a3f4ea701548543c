# chat_engine/relay.py
"""
POST /api/chat plumbing: assemble the upstream message list, then forward
upstream content deltas to the client as they arrive.

Per request: received -> forwarding -> streaming -> closed, with error
reachable from forwarding and streaming.
"""

import logging
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

import anyio
import httpx
import openai
from fastapi.concurrency import run_in_threadpool

from businessmeter.chat_engine.llm import UpstreamError
from businessmeter.chat_engine.prompts import (
    SYSTEM_PROMPT_CONSULTANT,
    expert_prompt,
    load_expert_knowledge,
)
from businessmeter.chat_engine.stream import (
    DONE_FRAME,
    ContentDelta,
    SSEDecoder,
    StreamDone,
    content_frame,
    error_frame,
)
from businessmeter.chat_engine.time_context import build_time_context
from businessmeter.core.config import LLM_STREAM_MAX_SECONDS
from businessmeter.services.websearch import format_search_results, needs_web_search
from businessmeter.tasks.engine import TASK_INSTRUCTION

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    received = "received"
    forwarding = "forwarding"
    streaming = "streaming"
    closed = "closed"
    error = "error"


class RelayRequestError(ValueError):
    """The chat request cannot be turned into an upstream call."""


# incoming role -> upstream role; anything unknown is treated as user
ROLE_MAP = {
    "user": "user",
    "model": "assistant",
    "assistant": "assistant",
}


# =========================================================
# MESSAGE ASSEMBLY
# =========================================================

def split_conversation(messages: Sequence[dict], user_question: Optional[str]) -> tuple[list[dict], str]:
    """
    Returns (history, new_message).

    The last entry is the new message when it is a user turn. Otherwise
    `userQuestion` is the new message and every entry is history.
    """
    turns = [
        m for m in messages
        if m.get("role") != "system" and isinstance(m.get("content"), str)
    ]

    if turns and turns[-1].get("role") == "user" and turns[-1]["content"].strip():
        return list(turns[:-1]), turns[-1]["content"]

    if user_question and user_question.strip():
        return list(turns), user_question

    raise RelayRequestError("No user message to answer")


def build_upstream_messages(system_prompt: str, history: Sequence[dict], new_message: str) -> list[dict]:
    upstream = [{"role": "system", "content": system_prompt}]

    for m in history:
        upstream.append({
            "role": ROLE_MAP.get(m.get("role"), "user"),
            "content": m["content"],
        })

    upstream.append({"role": "user", "content": new_message})
    return upstream


async def build_system_prompt(
    ctx,
    question: str,
    expert_id: Optional[str] = None,
    chat_id: Optional[int] = None,
    deep_search: bool = False,
) -> str:
    """
    Base instruction + time + expert persona/reference texts + learned
    knowledge + task context + web results. Every optional part is
    simply left out when its source has nothing to say.
    """
    prompt = SYSTEM_PROMPT_CONSULTANT
    prompt += "\n\n" + build_time_context()
    prompt += expert_prompt(expert_id)
    prompt += await run_in_threadpool(load_expert_knowledge, expert_id)

    prompt += await run_in_threadpool(ctx.knowledge.retrieve, question)

    if chat_id is not None:
        prompt += await run_in_threadpool(ctx.tasks.context_for_chat, chat_id)
    prompt += TASK_INSTRUCTION

    if deep_search and needs_web_search(question):
        results = await run_in_threadpool(ctx.search.search, question)
        prompt += format_search_results(results)

    return prompt


# =========================================================
# STREAMING
# =========================================================

async def _next_chunk(chunks: AsyncIterator[bytes], deadline: Optional[float]) -> bytes:
    if deadline is None:
        return await chunks.__anext__()
    with anyio.fail_after(max(deadline - anyio.current_time(), 0)):
        return await chunks.__anext__()


async def relay_stream(
    upstream,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    max_duration: Optional[float] = LLM_STREAM_MAX_SECONDS,
) -> AsyncIterator[str]:
    """
    Re-frame upstream SSE bytes as client frames.

    Each content delta is yielded as soon as it is decoded. The stream
    always ends with [DONE] unless it failed, ran past `max_duration`
    seconds or the client went away. The upstream response is closed on
    every exit path.
    """
    decoder = SSEDecoder()
    state = RelayState.streaming
    deadline = None if max_duration is None else anyio.current_time() + max_duration
    chunks = upstream.iter_bytes().__aiter__()

    try:
        while True:
            try:
                chunk = await _next_chunk(chunks, deadline)
            except StopAsyncIteration:
                break

            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected, aborting upstream stream")
                state = RelayState.closed
                return

            for event in decoder.feed(chunk):
                if isinstance(event, ContentDelta):
                    yield content_frame(event.text)

            if decoder.done:
                break

        for event in decoder.flush():
            if isinstance(event, ContentDelta):
                yield content_frame(event.text)
            elif isinstance(event, StreamDone):
                break

        state = RelayState.closed
        yield DONE_FRAME

    except (UpstreamError, httpx.HTTPError, openai.APIError) as exc:
        state = RelayState.error
        logger.error("Upstream stream failed: %s", exc)
        yield error_frame("Upstream stream interrupted")

    except TimeoutError:
        state = RelayState.error
        logger.error("Upstream stream exceeded %ss, aborting", max_duration)
        yield error_frame("Upstream stream timed out")

    finally:
        with anyio.CancelScope(shield=True):
            await upstream.aclose()
        logger.debug("Relay finished in state %s", state.value)
