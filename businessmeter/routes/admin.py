# routes/admin.py
from fastapi import APIRouter, Depends

from businessmeter.core.context import AppContext, get_context
from businessmeter.routes.errors import unwrap

router = APIRouter(prefix="/api/admin")


@router.get("/users")
def all_users(ctx: AppContext = Depends(get_context)):
    return [u.to_dict() for u in unwrap(ctx.users.list_all())]


@router.get("/chats")
def all_chats(ctx: AppContext = Depends(get_context)):
    return unwrap(ctx.chats.all_chats_with_users())


@router.get("/chats/{chat_id}/messages")
def chat_messages(chat_id: int, ctx: AppContext = Depends(get_context)):
    return [m.to_dict() for m in unwrap(ctx.chats.messages_for_chat(chat_id))]


@router.get("/stats")
def dashboard_stats(ctx: AppContext = Depends(get_context)):
    users = unwrap(ctx.users.counts())
    chats = unwrap(ctx.chats.counts())

    return {
        "totalUsers": users["totalUsers"],
        "totalChats": chats["totalChats"],
        "totalMessages": chats["totalMessages"],
        "premiumUsers": users["premiumUsers"],
    }


@router.delete("/users/{user_id}")
def delete_user(user_id: int, ctx: AppContext = Depends(get_context)):
    # removes the user's chats, messages and feedback as well
    unwrap(ctx.users.delete(user_id), "کاربر یافت نشد")
    return {"success": True}
