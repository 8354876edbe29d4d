# src/models/watch.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: Watch (один просмотр фильма пользователем)
# -----------------------------------------------------------------------------

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..db import Base


class Watch(Base):
    __tablename__ = "watches"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)

    watched_date = Column(Date, nullable=False, index=True)
    rating = Column(Integer, nullable=True, comment="Оценка 1..10")
    notes = Column(Text, nullable=True)
    watch_location = Column(String(50), nullable=True, comment="Cinema | Home | Other")
    watched_with = Column(String(255), nullable=True)
    is_rewatch = Column(Boolean, nullable=False, default=False)
    # приватный просмотр не попадает в ленты групп
    is_private = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=func.now())
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    movie = relationship("Movie")
    group_links = relationship(
        "WatchGroup",
        back_populates="watch",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 10)", name="ck_watches_rating_range"),
        Index("ix_watches_user_date", "user_id", "watched_date"),
        Index("ix_watches_user_movie", "user_id", "movie_id"),
    )

    def __repr__(self) -> str:
        return f"<Watch id={self.id} user={self.user_id} movie={self.movie_id} date={self.watched_date}>"
