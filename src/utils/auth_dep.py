# src/utils/auth_dep.py
"""
FastAPI-зависимости авторизации по bearer-токену.
- get_current_user: любой не удалённый пользователь (в т.ч. деактивированный, ему нужна реактивация)
- get_active_user: только активный аккаунт; деактивированным 403
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.user import User
from src.utils.security import decode_access_token
from src.utils.visibility import user_is_visible


def _get_bearer_token(request: Request) -> Optional[str]:
    """
    Токен из заголовка 'Authorization: Bearer <token>'.
    """
    header_v = request.headers.get("authorization") or request.headers.get("Authorization")
    if not header_v:
        return None
    scheme, _, token = header_v.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _get_bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Bearer token required")

    try:
        user_id = decode_access_token(token)
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        raise HTTPException(status_code=401, detail=f"Auth error: {str(e)}")

    user = db.scalar(select(User).where(User.id == user_id, user_is_visible()))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.is_deactivated:
        raise HTTPException(
            status_code=403,
            detail={"code": "account_deactivated", "message": "Account is deactivated. Reactivate to continue."},
        )
    return current_user
