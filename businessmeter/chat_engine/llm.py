# chat_engine/llm.py
import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator, Optional

import httpx
import openai
from openai import AsyncOpenAI

from businessmeter.core.config import (
    LLM_API_KEY,
    LLM_BASE_URL,
    LLM_CONNECT_TIMEOUT_SECONDS,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The upstream LLM could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamStream:
    """
    An open streamed completion. Yields raw SSE bytes exactly as upstream
    sends them. `aclose()` may be called more than once.
    """

    def __init__(self, stack: AsyncExitStack, response):
        self._stack = stack
        self._response = response
        self.closed = False

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.iter_bytes():
            yield chunk

    async def aclose(self):
        if self.closed:
            return
        self.closed = True
        await self._stack.aclose()


class LLMClient:
    """OpenAI-compatible chat completions endpoint, streamed, no retries."""

    def __init__(
        self,
        api_key: Optional[str] = LLM_API_KEY,
        base_url: str = LLM_BASE_URL,
        model: str = LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
        connect_timeout: float = LLM_CONNECT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(
            # the SDK refuses to construct without a key
            api_key=api_key or "missing",
            base_url=base_url,
            max_retries=0,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            http_client=http_client,
        )

    async def open_stream(self, messages: list[dict]) -> UpstreamStream:
        """
        Start a streamed completion. Raises UpstreamError when the
        connection fails or upstream answers with an error status.
        """
        stack = AsyncExitStack()
        try:
            response = await stack.enter_async_context(
                self.client.chat.completions.with_streaming_response.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    stream=True,
                )
            )
        except openai.APIStatusError as exc:
            await stack.aclose()
            logger.error("Upstream LLM answered %s: %s", exc.status_code, exc.message)
            raise UpstreamError(f"LLM API error: {exc.status_code}", exc.status_code) from exc
        except (openai.APIConnectionError, httpx.HTTPError) as exc:
            await stack.aclose()
            logger.error("Upstream LLM unreachable: %s", exc)
            raise UpstreamError("LLM API unreachable") from exc

        return UpstreamStream(stack, response)

    async def aclose(self):
        await self.client.close()
