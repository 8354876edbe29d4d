# src/models/watch_group.py
# МОДЕЛЬ: связь «просмотр расшарен в группу».
# CASCADE с обеих сторон: при удалении группы или просмотра связь исчезает.

from __future__ import annotations

from sqlalchemy import Column, Integer, DateTime, ForeignKey, PrimaryKeyConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..db import Base


class WatchGroup(Base):
    __tablename__ = "watch_groups"

    watch_id = Column(
        Integer,
        ForeignKey("watches.id", ondelete="CASCADE"),
        nullable=False,
    )
    group_id = Column(
        Integer,
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    shared_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        PrimaryKeyConstraint("watch_id", "group_id", name="pk_watch_groups"),
        Index("ix_watch_groups_group_id", "group_id"),
    )

    watch = relationship("Watch", back_populates="group_links")
    group = relationship("Group", back_populates="watch_links")
