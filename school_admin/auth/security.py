import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
from jose import jwt

from school_admin.core.config import settings


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # In case the stored hash is invalid/corrupted
        return False


def validate_password_strength(password: str) -> Optional[str]:
    """Return an error message when the password is too weak, else None."""
    if not password or len(password) < 8:
        return "Password must be at least 8 characters long"
    if not re.search(r"[a-zA-Z]", password) or not re.search(r"\d", password):
        return "Password must contain at least one letter and one number"
    return None


def create_access_token(
    *, subject: Dict, expires_minutes: Optional[int] = None
) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )
    return encoded_jwt
