# core/config.py

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# -------------------------------------------------
# App info
# -------------------------------------------------
APP_ENV = os.getenv("APP_ENV", "live")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# -------------------------------------------------
# Database
# -------------------------------------------------
# Optional: without it the learning/task features degrade to no-ops.
DATABASE_URL = os.getenv("DATABASE_URL")

# -------------------------------------------------
# Upstream LLM (OpenAI-compatible endpoint)
# -------------------------------------------------
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://ai.liara.ir/api/v1")
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "openai/gpt-4o-mini")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
# whole-response cap; the read timeout above only bounds the gap between chunks
LLM_STREAM_MAX_SECONDS = float(os.getenv("LLM_STREAM_MAX_SECONDS", "300"))

if not LLM_API_KEY:
    logger.warning("⚠️ LLM_API_KEY is not set, upstream chat calls will be rejected")

# -------------------------------------------------
# Knowledge / learning
# -------------------------------------------------
VALID_DEDUP_POLICIES = ["exact", "jaccard"]

KNOWLEDGE_DEDUP_POLICY = os.getenv("KNOWLEDGE_DEDUP_POLICY", "exact")
KNOWLEDGE_DEDUP_THRESHOLD = float(os.getenv("KNOWLEDGE_DEDUP_THRESHOLD", "0.8"))

if KNOWLEDGE_DEDUP_POLICY not in VALID_DEDUP_POLICIES:
    logger.warning(
        "Unknown KNOWLEDGE_DEDUP_POLICY '%s', falling back to 'exact'",
        KNOWLEDGE_DEDUP_POLICY,
    )
    KNOWLEDGE_DEDUP_POLICY = "exact"

EXPERT_KNOWLEDGE_DIR = os.getenv(
    "EXPERT_KNOWLEDGE_DIR",
    os.path.join(os.getcwd(), "expert_knowledge"),
)

# -------------------------------------------------
# External services
# -------------------------------------------------
GOOGLE_SEARCH_API_KEY = os.getenv("GOOGLE_SEARCH_API_KEY")
GOOGLE_SEARCH_ENGINE_ID = os.getenv("GOOGLE_SEARCH_ENGINE_ID")

# Resend
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "BusinessMeter <no-reply@businessmeter.ir>")
VERIFICATION_CODE_TTL_SECONDS = int(os.getenv("VERIFICATION_CODE_TTL_SECONDS", "600"))
