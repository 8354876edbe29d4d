# src/routers/auth.py
"""
Роутер авторизации: регистрация и вход по email/паролю.
Выдаёт bearer-токен (JWT). Деактивированный пользователь тоже получает токен,
он нужен, чтобы вызвать /api/users/reactivate.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.db import get_db
from src.schemas.user import AuthResponse, LoginRequest, UserCreate
from src.services.errors import AccountWorkflowError
from src.services.user_account import authenticate, register_user
from src.utils.security import create_access_token

router = APIRouter()


def _auth_response(user) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id),
        user_id=user.id,
        username=user.username,
        email=user.email,
        is_premium=bool(user.is_premium),
        is_deactivated=bool(user.is_deactivated),
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    try:
        user = register_user(db, username=payload.username, email=payload.email, password=payload.password)
    except AccountWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, email=payload.email, password=payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _auth_response(user)
