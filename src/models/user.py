# src/models/user.py

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index, func
from src.db import Base


class User(Base):
    """
    Доменный пользователь SceneStack.

    Удаление: только мягкое (is_deleted), строка остаётся ради истории
    просмотров/групп. Деактивация: временная блокировка, снимается реактивацией.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    # email обнуляется при окончательном удалении: можно зарегистрироваться заново
    email = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=True)
    bio = Column(String(300), nullable=True)

    is_premium = Column(Boolean, default=False, nullable=False, comment="Премиум-подписка")

    # --- Приватность (глобальные дефолты) ---
    share_watches = Column(Boolean, default=True, nullable=False)
    share_ratings = Column(Boolean, default=True, nullable=False)
    share_notes = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    # --- Жизненный цикл аккаунта ---
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    is_deactivated = Column(Boolean, default=False, nullable=False)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)

    # Решения по группам перед удалением: [{"group_id", "action", "transfer_to_user_id"}]
    pending_group_actions = Column(JSON(none_as_null=True), nullable=True, comment="Отложенные действия с группами")

    __table_args__ = (
        Index("ix_users_lifecycle", "is_deleted", "is_deactivated"),
    )

    def __repr__(self):
        return (
            f"<User(id={self.id}, username={self.username}, is_premium={self.is_premium}, "
            f"is_deleted={self.is_deleted}, is_deactivated={self.is_deactivated})>"
        )
