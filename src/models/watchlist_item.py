# src/models/watchlist_item.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: WatchlistItem (фильм в списке «посмотреть позже»)
# -----------------------------------------------------------------------------

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship

from ..db import Base


class WatchlistItem(Base):
    __tablename__ = "watchlist_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    # 1 = самый приоритетный; у живых записей пользователя номера идут подряд
    priority = Column(Integer, nullable=False, default=1)

    added_at = Column(DateTime, nullable=False, default=func.now())
    created_at = Column(DateTime, nullable=False, default=func.now())
    # удалённая запись восстанавливается при повторном добавлении того же фильма
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    movie = relationship("Movie")

    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="uq_watchlist_items_user_movie"),
        Index("ix_watchlist_items_user_priority", "user_id", "priority"),
    )

    def __repr__(self) -> str:
        return f"<WatchlistItem id={self.id} user={self.user_id} movie={self.movie_id} priority={self.priority}>"
