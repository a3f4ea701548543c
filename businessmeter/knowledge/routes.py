# knowledge/routes.py
import logging

from fastapi import APIRouter, Depends, Query

from businessmeter.core.context import AppContext, get_context
from businessmeter.knowledge.classifier import Category
from businessmeter.routes.errors import ApiError, unwrap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin")


@router.get("/learned-knowledge")
def learned_knowledge(
    category: str = Query("all"),
    limit: int = Query(100, ge=1),
    ctx: AppContext = Depends(get_context),
):
    """`category=all` (or empty) lists every category."""
    selected = None
    if category not in ("", "all"):
        selected = Category.lookup(category)
        if selected is None:
            raise ApiError(400, f"Unknown category: {category}")
    rows = unwrap(ctx.knowledge.list_pairs(selected, limit))
    return [k.to_dict() for k in rows]


@router.post("/process-learning")
def process_learning(ctx: AppContext = Depends(get_context)):
    count = ctx.knowledge.run_batch_learning()
    return {
        "count": count,
        "message": f"{count} مورد دانش جدید یاد گرفته شد",
    }


@router.delete("/learned-knowledge/{knowledge_id}")
def delete_learned_knowledge(knowledge_id: int, ctx: AppContext = Depends(get_context)):
    unwrap(ctx.knowledge.delete_pair(knowledge_id), "دانش یافت نشد")
    return {"success": True}


@router.get("/learning-stats")
def learning_stats(ctx: AppContext = Depends(get_context)):
    return unwrap(ctx.knowledge.stats())
