from fastapi import APIRouter, Depends

from businessmeter.core.config import APP_ENV, APP_VERSION
from businessmeter.core.context import AppContext, get_context

router = APIRouter()


@router.get("/health")
def health(ctx: AppContext = Depends(get_context)):
    return {
        "status": "ok",
        "env": APP_ENV,
        "version": APP_VERSION,
        "db_ok": ctx.db.ping(),
    }
