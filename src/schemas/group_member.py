# src/schemas/group_member.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel
from .user import UserBasicOut


class GroupRoleEnum(str, Enum):
    member = "member"
    admin = "admin"
    creator = "creator"


class GroupMemberCreate(BaseModel):
    user_id: int
    # creator через эту ручку назначить нельзя: только передачей владения
    role: GroupRoleEnum = GroupRoleEnum.member


class GroupMemberRoleUpdate(BaseModel):
    role: GroupRoleEnum


class GroupMemberOut(BaseModel):
    id: int
    group_id: int
    role: GroupRoleEnum
    joined_at: datetime
    user: UserBasicOut
    class Config:
        from_attributes = True
