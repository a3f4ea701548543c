"""Tests for the incremental upstream SSE decoder and client frames."""

import json
import random

import pytest

from businessmeter.chat_engine.stream import (
    DONE_FRAME,
    ContentDelta,
    SSEDecoder,
    StreamDone,
    content_frame,
    error_frame,
)
from tests.fakes.fake_db import sse_chunk

STREAM = (
    sse_chunk("سلام")
    + b": keep-alive comment\n\n"
    + sse_chunk(" دنیا")
    + b"data: {not json}\n\n"
    + b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
    + b'data: {"choices":[]}\n\n'
    + sse_chunk("!")
    + b"data: [DONE]\n\n"
)

EXPECTED = [ContentDelta("سلام"), ContentDelta(" دنیا"), ContentDelta("!"), StreamDone()]


def _decode(chunks):
    decoder = SSEDecoder()
    events = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    events.extend(decoder.flush())
    return events


def _split(data: bytes, cuts):
    pieces, last = [], 0
    for cut in sorted(cuts):
        pieces.append(data[last:cut])
        last = cut
    pieces.append(data[last:])
    return pieces


def test_single_chunk():
    assert _decode([STREAM]) == EXPECTED


def test_byte_by_byte_including_split_utf8():
    assert _decode([STREAM[i:i + 1] for i in range(len(STREAM))]) == EXPECTED


@pytest.mark.parametrize("seed", range(25))
def test_arbitrary_chunk_boundaries(seed):
    rng = random.Random(seed)
    cuts = rng.sample(range(1, len(STREAM)), rng.randint(1, 12))
    assert _decode(_split(STREAM, cuts)) == EXPECTED


def test_hi_then_done_scenario():
    data = b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n' + b"data: [DONE]\n\n"
    events = _decode([data[:17], data[17:40], data[40:]])
    assert events == [ContentDelta("Hi"), StreamDone()]


def test_crlf_line_endings_and_no_space_after_prefix():
    data = b'data:{"choices":[{"delta":{"content":"a"}}]}\r\n\r\ndata: [DONE]\r\n\r\n'
    assert _decode([data]) == [ContentDelta("a"), StreamDone()]


def test_nothing_after_done_is_decoded():
    data = b"data: [DONE]\n\n" + sse_chunk("late")
    assert _decode([data]) == [StreamDone()]


def test_missing_done_and_trailing_line_without_newline():
    data = sse_chunk("x") + b'data: {"choices":[{"delta":{"content":"y"}}]}'
    assert _decode([data]) == [ContentDelta("x"), ContentDelta("y")]


def test_content_frame_keeps_persian_text():
    frame = content_frame("سلام")
    assert frame == 'data: {"content":"سلام"}\n\n'
    assert json.loads(frame[len("data: "):]) == {"content": "سلام"}


def test_error_and_done_frames():
    assert error_frame("boom") == 'data: {"error":"boom"}\n\n'
    assert DONE_FRAME == "data: [DONE]\n\n"
