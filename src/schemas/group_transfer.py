# src/schemas/group_transfer.py
# -----------------------------------------------------------------------------
# СХЕМЫ Pydantic: передача/удаление своих групп перед удалением аккаунта
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

ACTION_DELETE = "delete"
ACTION_TRANSFER = "transfer"


class EligibleTransferMember(BaseModel):
    user_id: int
    username: str
    is_premium: bool
    is_admin: bool = Field(..., description="Админ в этой группе")
    is_eligible: bool = Field(..., description="Может получить владение группой")


class GroupTransferEligibility(BaseModel):
    group_id: int
    group_name: str
    member_count: int
    eligible_members: List[EligibleTransferMember] = Field(default_factory=list)
    can_transfer: bool = Field(..., description="False, если группу можно только удалить")
    auto_delete: bool = Field(False, description="Решение не требуется: группа удалится сама")


class GroupActionIn(BaseModel):
    group_id: int
    # строка, а не Enum: неизвестное действие возвращаем постатейной ошибкой
    action: str = Field(..., description="delete | transfer")
    transfer_to_user_id: Optional[int] = Field(None, description="Обязателен для transfer")


class ManageGroupsRequest(BaseModel):
    group_actions: List[GroupActionIn] = Field(default_factory=list)


class MessageOut(BaseModel):
    message: str
