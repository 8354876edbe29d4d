from sqlalchemy import Column, Integer, String, DateTime, JSON, Index, func
from sqlalchemy.dialects.postgresql import JSONB
from src.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)

    # кто совершил действие (NULL: система, например фоновая очистка)
    actor_id = Column(Integer, nullable=True)

    # к какой группе относится (может быть NULL для событий аккаунта)
    # без FK: записи переживают удаление групп и пользователей
    group_id = Column(Integer, nullable=True)

    # над кем действие (новый владелец, удалённый аккаунт и т.п.)
    target_user_id = Column(Integer, nullable=True)

    # тип события
    type = Column(String(64), nullable=False)

    # произвольные данные события (JSONB на PostgreSQL)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True, default=dict)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_events_group_created", "group_id", "created_at"),
        Index("ix_events_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} type={self.type} actor={self.actor_id} group={self.group_id}>"
