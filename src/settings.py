# src/settings.py
# Настройки приложения из окружения (.env подхватывается через python-dotenv).

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scenestack.db")

# --- JWT ---
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "10080"))  # 7 дней

# --- Передача владения группой ---
# Что делать с бывшим создателем после передачи: "admin" понизить до админа,
# "remove" удалить membership целиком.
CREATOR_POLICY_ADMIN = "admin"
CREATOR_POLICY_REMOVE = "remove"
CREATOR_AFTER_TRANSFER = os.getenv("CREATOR_AFTER_TRANSFER", CREATOR_POLICY_ADMIN).lower().strip()
if CREATOR_AFTER_TRANSFER not in (CREATOR_POLICY_ADMIN, CREATOR_POLICY_REMOVE):
    raise RuntimeError("CREATOR_AFTER_TRANSFER must be 'admin' or 'remove'")

# --- Фоновая очистка аккаунтов ---
ACCOUNT_CLEANUP_ENABLED = os.getenv("ACCOUNT_CLEANUP_ENABLED") == "1"
ACCOUNT_CLEANUP_GRACE_DAYS = int(os.getenv("ACCOUNT_CLEANUP_GRACE_DAYS", "30"))

# --- Лимиты бесплатного тарифа ---
FREE_TIER_MAX_CREATED_GROUPS = 1
FREE_TIER_MAX_JOINED_GROUPS = 2
FREE_TIER_MAX_WATCHLIST_ITEMS = 50

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if o.strip()
]
