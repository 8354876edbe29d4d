# src/main.py
# Главная точка входа FastAPI для SceneStack.
#  • Роутеры: авторизация, профиль/аккаунт, приватность, группы и участники,
#    просмотры, watchlist
#  • Фоновая очистка деактивированных аккаунтов (ENV: ACCOUNT_CLEANUP_ENABLED=1)

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.settings import ACCOUNT_CLEANUP_ENABLED, CORS_ORIGINS
from src.db import engine  # noqa: F401  инициализация БД/пула соединений

from src.routers.auth import router as auth_router
from src.routers.users import router as users_router
from src.routers.groups import router as groups_router
from src.routers.group_members import router as group_members_router
from src.routers.watches import router as watches_router
from src.routers.watchlist import router as watchlist_router
from src.routers.privacy import router as privacy_router

from src.jobs.account_cleanup import start_account_cleanup_loop

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="SceneStack Backend",
    description="Backend для SceneStack: дневник просмотров, группы, жизненный цикл аккаунта.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Подключение роутеров ---
app.include_router(auth_router,          prefix="/api/auth",    tags=["Авторизация"])
app.include_router(users_router,         prefix="/api/users",   tags=["Пользователи"])
app.include_router(groups_router,        prefix="/api/groups",  tags=["Группы"])
app.include_router(group_members_router, prefix="/api/groups",  tags=["Участники групп"])
app.include_router(watches_router,       prefix="/api/watches", tags=["Просмотры"])
app.include_router(watchlist_router,     prefix="/api/watchlist", tags=["Watchlist"])
app.include_router(privacy_router,       prefix="/api/privacy", tags=["Приватность"])


@app.get("/")
def root():
    """Простой healthcheck."""
    return {"message": "SceneStack backend работает!", "docs": "/docs"}


# Включается только при ACCOUNT_CLEANUP_ENABLED=1.
@app.on_event("startup")
async def _startup_jobs():
    if ACCOUNT_CLEANUP_ENABLED:
        start_account_cleanup_loop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000, reload=False)
