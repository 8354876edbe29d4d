# src/schemas/group.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: Group
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel, Field

from .group_member import GroupMemberOut


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Название группы")
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Описание группы (необязательно)",
    )


class GroupUpdate(GroupCreate):
    pass


class GroupOut(BaseModel):
    id: int = Field(..., description="ID группы")
    name: str = Field(..., description="Название группы")
    description: Optional[str] = Field(None, description="Описание группы")
    created_by_id: int = Field(..., description="ID владельца группы")
    created_at: datetime
    updated_at: datetime

    members: List[GroupMemberOut] = Field(default_factory=list, description="Состав группы")
    member_count: int = Field(0, description="Число участников")

    class Config:
        from_attributes = True
