# src/db.py
# Инициализация SQLAlchemy: движок, сессии, Base и явные импорты моделей.

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from src.settings import DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    # SQLite (локально/тесты): без пула соединений, доступ из потоков FastAPI
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=20,
        max_overflow=20,
        pool_timeout=60,
        pool_recycle=1800,
        pool_pre_ping=True,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

from src.models import (  # noqa: E402
    user,
    group,
    group_member,
    group_member_history,
    movie,
    watch,
    watch_group,
    event,
    watchlist_item,
)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
