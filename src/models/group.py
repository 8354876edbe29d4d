# src/models/group.py
# -----------------------------------------------------------------------------
# МОДЕЛЬ: Group (SQLAlchemy)
# -----------------------------------------------------------------------------

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Index,
    func,
    text,
)
from sqlalchemy.orm import relationship

from ..db import Base


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)

    # Владелец группы: ровно один в каждый момент времени
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by = relationship("User")

    created_at = Column(DateTime, nullable=False, default=func.now())
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    deleted_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Soft-delete метка; если не NULL: группа скрыта",
    )

    # Счётчик версий для оптимистичной блокировки (смена владельца/удаление)
    version_id = Column(
        Integer,
        nullable=False,
        default=1,
        server_default=text("1"),
        comment="Версия строки (optimistic concurrency)",
    )

    members = relationship(
        "GroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    watch_links = relationship(
        "WatchGroup",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("ix_groups_deleted_at", "deleted_at"),
        Index("ix_groups_created_by_active", "created_by_id", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<Group id={self.id} name={self.name!r} created_by={self.created_by_id}>"
