# services/websearch.py
import logging
from typing import Optional

import requests

from businessmeter.core.config import GOOGLE_SEARCH_API_KEY, GOOGLE_SEARCH_ENGINE_ID

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
SEARCH_TIMEOUT_SECONDS = 5

# questions about fresh data: dates, prices, news, statistics
WEB_SEARCH_KEYWORDS = [
    "آخرین", "جدیدترین", "امروز", "امسال", "2024", "2025", "2026",
    "latest", "recent", "current", "today", "this year",
    "قیمت", "price", "cost",
    "اخبار", "news",
    "آمار", "statistics", "stats",
]


# =====================================================
# HELPERS
# =====================================================

def needs_web_search(question: str) -> bool:
    q = (question or "").lower()
    return any(k.lower() in q for k in WEB_SEARCH_KEYWORDS)


def format_search_results(results: list[dict]) -> str:
    if not results:
        return ""

    text = "\n\n🔍 **نتایج جستجوی وب (Deep Search):**\n\n"
    for index, r in enumerate(results, start=1):
        text += f"{index}. **{r.get('title') or ''}**\n"
        text += f"   {r.get('snippet') or ''}\n"
        text += f"   🔗 {r.get('link') or ''}\n\n"

    text += "**توجه**: از اطلاعات بالا برای پاسخ دقیق‌تر استفاده کنید و منابع را ذکر کنید.\n"
    return text


# =====================================================
# GOOGLE CUSTOM SEARCH
# =====================================================

class WebSearchClient:
    """Google Custom Search. Every failure ends in an empty result list."""

    def __init__(
        self,
        api_key: Optional[str] = GOOGLE_SEARCH_API_KEY,
        engine_id: Optional[str] = GOOGLE_SEARCH_ENGINE_ID,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.engine_id = engine_id
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    def search(self, query: str, num_results: int = 5) -> list[dict]:
        query = (query or "").strip()
        if not query:
            return []

        if not self.configured:
            logger.warning("⚠️ Google Search API credentials not configured")
            return []

        try:
            r = self.session.get(
                GOOGLE_SEARCH_URL,
                params={
                    "key": self.api_key,
                    "cx": self.engine_id,
                    "q": query,
                    "num": num_results,
                },
                timeout=SEARCH_TIMEOUT_SECONDS,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Web search failed: %s", e)
            return []

        return [
            {
                "title": item.get("title"),
                "link": item.get("link"),
                "snippet": item.get("snippet"),
            }
            for item in data.get("items") or []
        ]
