# src/utils/security.py
# Пароли (werkzeug) и bearer-токены (PyJWT, HS256).

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from src.settings import JWT_ALGORITHM, JWT_EXPIRES_MINUTES, JWT_SECRET


def hash_password(password: str) -> str:
    return generate_password_hash(password, method="pbkdf2:sha256")


def verify_password(password_hash: Optional[str], password: str) -> bool:
    """Удалённые аккаунты без хэша никогда не проходят проверку."""
    if not password_hash or not password:
        return False
    return check_password_hash(password_hash, password)


def create_access_token(user_id: int, *, expires_minutes: int = JWT_EXPIRES_MINUTES) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Возвращает user_id из токена. Ошибки PyJWT (истёк, подпись) пробрасываются.
    """
    payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    return int(payload["sub"])
