# core/lifespan.py
import logging
from contextlib import asynccontextmanager

from businessmeter.db.models import STORAGE_ERRORS, init_db

logger = logging.getLogger(__name__)


def on_startup(app):
    ctx = app.state.context_factory()
    app.state.ctx = ctx

    # 1️⃣ Database init
    if not ctx.db.configured:
        logger.warning("⚠️ DATABASE_URL is not set, running without storage")
        return

    try:
        init_db(ctx.db)
    except STORAGE_ERRORS as e:
        # the app still serves chat without storage
        logger.error("❌ Database init failed: %s", e)


@asynccontextmanager
async def lifespan(app):
    # ⏳ startup
    on_startup(app)
    yield
    # 🧹 shutdown
    await app.state.ctx.llm.aclose()
