# src/models/group_member.py
# Модель участника группы + уникальность (group_id, user_id) + роль в группе

import enum

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, DateTime, Enum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db import Base


class GroupRole(enum.Enum):
    member = "member"
    admin = "admin"
    creator = "creator"


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # creator ровно один на группу
    role = Column(
        Enum(GroupRole, name="group_role"),
        nullable=False,
        default=GroupRole.member,
        server_default=text("'member'"),
    )
    joined_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
        Index("ix_group_members_group_role", "group_id", "role"),
    )

    group = relationship("Group", back_populates="members")
    user = relationship("User")
