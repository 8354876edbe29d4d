# src/models/group_member_history.py
# Журнал изменений состава группы. Только вставки: строки никогда не меняются.

import enum

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, Index
from sqlalchemy.sql import func

from ..db import Base
from .group_member import GroupRole


class GroupMemberAction(enum.Enum):
    added = "added"
    removed = "removed"
    role_changed = "role_changed"
    left = "left"


class GroupMemberHistory(Base):
    __tablename__ = "group_member_history"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False)
    # над кем действие
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(Enum(GroupMemberAction, name="group_member_action"), nullable=False)
    # кто совершил (NULL: система, например фоновая очистка)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    previous_role = Column(Enum(GroupRole, name="group_role"), nullable=True)
    new_role = Column(Enum(GroupRole, name="group_role"), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_group_member_history_group_ts", "group_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<GroupMemberHistory group={self.group_id} user={self.user_id} action={self.action}>"
