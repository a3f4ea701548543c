import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from businessmeter.core.config import APP_VERSION, CORS_ORIGINS
from businessmeter.core.context import build_context
from businessmeter.core.lifespan import lifespan
from businessmeter.knowledge.routes import router as knowledge_router
from businessmeter.routes.admin import router as admin_router
from businessmeter.routes.auth import router as auth_router
from businessmeter.routes.chat import router as chat_router
from businessmeter.routes.chats import router as chats_router
from businessmeter.routes.errors import register_error_handlers
from businessmeter.routes.health import router as health_router

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


def create_app(context_factory=build_context) -> FastAPI:
    app = FastAPI(title="BusinessMeter API", version=APP_VERSION, lifespan=lifespan)
    app.state.context_factory = context_factory

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(chats_router)
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(knowledge_router)

    return app


app = create_app()
