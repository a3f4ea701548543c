"""Tests for expert reference texts, time context and web search helpers."""

from datetime import datetime
from unittest.mock import MagicMock

import requests

from businessmeter.chat_engine.prompts import (
    MAX_EXPERT_FILE_CHARS,
    expert_prompt,
    load_expert_knowledge,
)
from businessmeter.chat_engine.time_context import TEHRAN, build_time_context
from businessmeter.services.websearch import (
    WebSearchClient,
    format_search_results,
    needs_web_search,
)


# ──────────────────────────────────────────────────────────────────────
# Experts
# ──────────────────────────────────────────────────────────────────────


def test_expert_prompt_known_and_unknown():
    assert "مدیر مالی ارشد" in expert_prompt("finance")
    assert expert_prompt("astrologer") == ""
    assert expert_prompt(None) == ""


def test_load_expert_knowledge_reads_first_three_files(tmp_path):
    folder = tmp_path / "Marketing"
    folder.mkdir()
    for name in ["a.txt", "b.md", "c.txt", "d.txt"]:
        (folder / name).write_text(f"متن {name}", encoding="utf-8")
    (folder / "ignored.pdf").write_text("pdf", encoding="utf-8")

    text = load_expert_knowledge("marketing", str(tmp_path))

    assert "منابع دانش تخصصی" in text
    assert "متن a.txt" in text and "متن b.md" in text and "متن c.txt" in text
    assert "d.txt" not in text
    assert "pdf" not in text


def test_load_expert_knowledge_truncates_long_files(tmp_path):
    folder = tmp_path / "Finance"
    folder.mkdir()
    (folder / "long.txt").write_text("x" * (MAX_EXPERT_FILE_CHARS + 500), encoding="utf-8")

    text = load_expert_knowledge("finance", str(tmp_path))

    assert "x" * MAX_EXPERT_FILE_CHARS in text
    assert "x" * (MAX_EXPERT_FILE_CHARS + 1) not in text


def test_load_expert_knowledge_missing_folder(tmp_path):
    assert load_expert_knowledge("hr", str(tmp_path)) == ""
    assert load_expert_knowledge("unknown", str(tmp_path)) == ""


# ──────────────────────────────────────────────────────────────────────
# Time context
# ──────────────────────────────────────────────────────────────────────


def test_time_context_morning():
    now = TEHRAN.localize(datetime(2025, 3, 21, 9, 30))
    text = build_time_context(now)

    assert "2025-03-21" in text
    assert "09:30" in text
    assert "صبح" in text


def test_time_context_night():
    assert "شب" in build_time_context(TEHRAN.localize(datetime(2025, 3, 21, 2, 0)))


# ──────────────────────────────────────────────────────────────────────
# Web search
# ──────────────────────────────────────────────────────────────────────


def test_needs_web_search():
    assert needs_web_search("قیمت طلا امروز")
    assert needs_web_search("Latest NEWS on inflation")
    assert not needs_web_search("چطور تیم فروش را انگیزه بدهم؟")


def test_format_search_results():
    text = format_search_results([{"title": "T", "snippet": "S", "link": "https://x"}])
    assert "1. **T**" in text
    assert "🔗 https://x" in text
    assert format_search_results([]) == ""


def test_search_without_credentials_returns_empty():
    session = MagicMock()
    client = WebSearchClient(api_key=None, engine_id=None, session=session)

    assert client.search("قیمت") == []
    session.get.assert_not_called()


def test_search_parses_items():
    session = MagicMock()
    session.get.return_value.json.return_value = {
        "items": [{"title": "T", "link": "https://x", "snippet": "S", "extra": 1}]
    }
    client = WebSearchClient(api_key="k", engine_id="e", session=session)

    assert client.search("قیمت") == [{"title": "T", "link": "https://x", "snippet": "S"}]
    assert session.get.call_args.kwargs["timeout"] == 5
    assert session.get.call_args.kwargs["params"]["q"] == "قیمت"


def test_search_http_failure_returns_empty():
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    client = WebSearchClient(api_key="k", engine_id="e", session=session)

    assert client.search("قیمت") == []
