# core/security.py
from typing import Optional

from passlib.context import CryptContext

# bcrypt_sha256 pre-hashes, so passwords past bcrypt's 72-byte limit still count in full
pwd_context = CryptContext(schemes=["bcrypt_sha256"])

MIN_PASSWORD_LENGTH = 6


def normalize_password(password: Optional[str]) -> str:
    return (password or "").strip()


def password_problem(password: str) -> Optional[str]:
    """Persian message for a password the register form should refuse, else None."""
    if len(normalize_password(password)) < MIN_PASSWORD_LENGTH:
        return f"رمز عبور باید حداقل {MIN_PASSWORD_LENGTH} کاراکتر باشد"
    return None


def hash_password(password: str) -> str:
    return pwd_context.hash(normalize_password(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    plain = normalize_password(plain_password)
    if not plain or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain, hashed_password)
    except ValueError:
        # stored value is not a hash this context can read
        return False
