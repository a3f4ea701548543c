# services/email.py
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import resend

from businessmeter.core.config import EMAIL_FROM, RESEND_API_KEY, VERIFICATION_CODE_TTL_SECONDS

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def generate_verification_code() -> str:
    """Random 6-digit code, never starting with 0."""
    return str(100000 + secrets.randbelow(900000))


# =========================================================
# CODE STORE
# =========================================================

@dataclass
class _CodeEntry:
    code: str
    expires_at: float


class VerificationCodeStore:
    """
    In-memory email -> code map. Every entry carries its own expiry and
    expired entries are dropped whenever the store is touched, so the map
    only holds codes that can still be used.
    """

    def __init__(
        self,
        ttl_seconds: float = VERIFICATION_CODE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CodeEntry] = {}
        # issue() runs on the event loop, verify() in threadpool workers
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)

    def _purge(self):
        now = self._clock()
        for email in [e for e, entry in self._entries.items() if entry.expires_at <= now]:
            self._entries.pop(email, None)

    def issue(self, email: str, code: Optional[str] = None) -> str:
        """Store a fresh code for `email`, replacing any earlier one."""
        code = code or generate_verification_code()
        with self._lock:
            self._purge()
            self._entries[email.lower()] = _CodeEntry(
                code=code,
                expires_at=self._clock() + self.ttl_seconds,
            )
        return code

    def verify(self, email: str, code: str) -> bool:
        """One-time check. A matching code is consumed; a wrong one is kept."""
        key = email.lower()
        with self._lock:
            self._purge()
            entry = self._entries.get(key)
            if entry is None:
                return False
            if not secrets.compare_digest(entry.code, (code or "").strip()):
                return False
            self._entries.pop(key, None)
            return True


# =========================================================
# RESEND
# =========================================================

VERIFICATION_SUBJECT = "کد تایید ورود به بیزنس‌متر"


def render_verification_email(code: str, ttl_minutes: int) -> str:
    return f"""
<!DOCTYPE html>
<html dir="rtl" lang="fa">
<head>
  <meta charset="UTF-8">
</head>
<body style="font-family: Tahoma, sans-serif; background-color: #f4f4f4; margin: 0; padding: 0;">
  <div style="max-width: 600px; margin: 40px auto; background: white; border-radius: 12px; overflow: hidden;">
    <div style="background: #667eea; padding: 30px; text-align: center;">
      <h1 style="color: white; margin: 0;">🚀 بیزنس‌متر</h1>
    </div>
    <div style="padding: 40px 30px; text-align: center;">
      <h2>کد تایید شما</h2>
      <p>برای ورود به حساب کاربری خود، کد زیر را وارد کنید:</p>
      <div style="border: 2px dashed #667eea; border-radius: 8px; padding: 20px; margin: 30px 0;">
        <div style="font-size: 36px; font-weight: bold; color: #667eea; letter-spacing: 8px;">{code}</div>
      </div>
      <p>این کد تا <strong>{ttl_minutes} دقیقه</strong> معتبر است.</p>
      <p style="color: #dc3545;">⚠️ این کد را با هیچ‌کس به اشتراک نگذارید!</p>
    </div>
    <div style="background: #f8f9fa; padding: 20px; text-align: center; color: #666;">
      <p>اگر شما درخواست این کد را نداده‌اید، این ایمیل را نادیده بگیرید.</p>
    </div>
  </div>
</body>
</html>
"""


def send_verification_email(to_email: str, code: str) -> bool:
    if not resend.api_key:
        logger.warning("⚠️ RESEND_API_KEY is not set, verification mail not sent")
        return False

    try:
        resend.Emails.send({
            "from": EMAIL_FROM,
            "to": to_email,
            "subject": VERIFICATION_SUBJECT,
            "html": render_verification_email(code, VERIFICATION_CODE_TTL_SECONDS // 60),
        })
    except Exception as e:
        logger.error("❌ Error sending verification email to %s: %s", to_email, e)
        return False

    logger.info("✅ Verification email sent to %s", to_email)
    return True
