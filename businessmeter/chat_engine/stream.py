"""Incremental decoding of an upstream chat-completions SSE byte stream."""

import codecs
import json
from dataclasses import dataclass
from typing import Optional, Union

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"data: {DONE_SENTINEL}\n\n"


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class StreamDone:
    pass


StreamEvent = Union[ContentDelta, StreamDone]


def _encode(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def content_frame(text: str) -> str:
    return f"data: {_encode({'content': text})}\n\n"


def error_frame(message: str) -> str:
    return f"data: {_encode({'error': message})}\n\n"


def extract_delta_content(packet) -> Optional[str]:
    if not isinstance(packet, dict):
        return None
    choices = packet.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class SSEDecoder:
    """
    Feed raw bytes in any chunking; get back the same events as if the
    whole stream had arrived at once. Partial lines and partial UTF-8
    sequences are held until the rest arrives. Lines that are not
    `data:` lines or do not parse are dropped.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def flush(self) -> list[StreamEvent]:
        """Decode whatever is left once upstream has closed."""
        self._buffer += self._decoder.decode(b"", final=True)
        events = self._drain()
        if self._buffer and not self.done:
            event = self._parse_line(self._buffer)
            if event is not None:
                events.append(event)
        self._buffer = ""
        return events

    def _drain(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        while not self.done and "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            event = self._parse_line(line)
            if event is not None:
                events.append(event)
        return events

    def _parse_line(self, line: str) -> Optional[StreamEvent]:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            self.done = True
            return StreamDone()

        try:
            packet = json.loads(data)
        except json.JSONDecodeError:
            return None

        content = extract_delta_content(packet)
        if content is None:
            return None
        return ContentDelta(content)
