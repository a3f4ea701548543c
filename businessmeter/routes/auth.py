# routes/auth.py
import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from businessmeter.core.context import AppContext, get_context
from businessmeter.core.security import (
    hash_password,
    normalize_password,
    password_problem,
    verify_password,
)
from businessmeter.routes.errors import ApiError, unwrap

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

USER_NOT_FOUND = "کاربر یافت نشد"


class RegisterPayload(BaseModel):
    name: str
    email: str
    password: str


class LoginPayload(BaseModel):
    email: str
    password: str


class SendCodePayload(BaseModel):
    email: str


class VerifyCodePayload(BaseModel):
    email: str
    code: str


class PremiumPayload(BaseModel):
    hasPremium: bool


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# =============================================================
# REGISTER / LOGIN
# =============================================================

@router.post("/auth/register")
def register(payload: RegisterPayload, ctx: AppContext = Depends(get_context)):
    email = _normalize_email(payload.email)
    password = normalize_password(payload.password)

    if not payload.name.strip() or not email or not password:
        raise ApiError(400, "نام، ایمیل و رمز عبور الزامی است")

    problem = password_problem(password)
    if problem:
        raise ApiError(400, problem)

    existing = ctx.users.by_email(email)
    if existing.is_error:
        unwrap(existing)
    if existing.is_ok:
        raise ApiError(400, "کاربر با این ایمیل قبلاً ثبت‌نام کرده است")

    user = unwrap(ctx.users.create(payload.name.strip(), email, hash_password(password)))
    logger.info("👤 New user registered: %s", user.id)
    return user.to_dict()


@router.post("/auth/login")
def login(payload: LoginPayload, ctx: AppContext = Depends(get_context)):
    result = ctx.users.by_email(_normalize_email(payload.email))
    if result.is_error:
        unwrap(result)

    if not result.is_ok or not verify_password(payload.password, result.value.password_hash):
        raise ApiError(401, "ایمیل یا رمز عبور اشتباه است")

    return result.value.to_dict()


# =============================================================
# EMAIL VERIFICATION
# =============================================================

@router.post("/auth/send-code")
async def send_code(payload: SendCodePayload, ctx: AppContext = Depends(get_context)):
    email = _normalize_email(payload.email)
    if not email:
        raise ApiError(400, "ایمیل الزامی است")

    code = ctx.codes.issue(email)
    sent = await run_in_threadpool(ctx.send_code_email, email, code)
    if not sent:
        raise ApiError(500, "خطا در ارسال ایمیل")

    return {"success": True, "message": "کد تایید به ایمیل شما ارسال شد"}


@router.post("/auth/verify-code")
def verify_code(payload: VerifyCodePayload, ctx: AppContext = Depends(get_context)):
    if not ctx.codes.verify(_normalize_email(payload.email), payload.code):
        raise ApiError(400, "کد تایید نامعتبر یا منقضی شده است")

    return {"success": True, "message": "ایمیل با موفقیت تایید شد"}


# =============================================================
# USERS
# =============================================================

@router.patch("/users/{user_id}/premium")
def set_premium(user_id: int, payload: PremiumPayload, ctx: AppContext = Depends(get_context)):
    user = unwrap(ctx.users.set_premium(user_id, payload.hasPremium), USER_NOT_FOUND)
    return user.to_dict()


@router.patch("/users/{user_id}/increment-messages")
def increment_messages(user_id: int, ctx: AppContext = Depends(get_context)):
    user = unwrap(ctx.users.increment_free_messages(user_id), USER_NOT_FOUND)
    return user.to_dict()
