# src/utils/groups.py
# ОБЩИЕ ХЕЛПЕРЫ ДЛЯ РАБОТЫ С ГРУППАМИ.

from __future__ import annotations

from typing import List

from fastapi import HTTPException
from starlette import status
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ..models.group import Group
from ..models.group_member import GroupMember, GroupRole
from ..models.user import User
from .visibility import group_is_visible, user_is_active

# =========================
# БАЗОВЫЕ ГАРДЫ / ЗАГРУЗКИ
# =========================

def get_group_or_404(db: Session, group_id: int) -> Group:
    group = db.scalar(select(Group).where(Group.id == group_id, group_is_visible()))
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


def require_membership(db: Session, group_id: int, user_id: int) -> GroupMember:
    """
    Возвращает membership текущего пользователя в видимой группе.
    Чужим отвечаем 404, а не 403: не раскрываем факт существования группы.
    """
    get_group_or_404(db, group_id)
    member = db.scalar(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
        )
    )
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return member


def require_manager(db: Session, group_id: int, user_id: int) -> GroupMember:
    """creator или admin."""
    member = require_membership(db, group_id, user_id)
    if member.role not in (GroupRole.creator, GroupRole.admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only creator or admin can perform this action")
    return member


def require_creator(db: Session, group_id: int, user_id: int) -> Group:
    group = get_group_or_404(db, group_id)
    if group.created_by_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only creator can perform this action")
    return group


# =========================
# ЧЛЕНЫ ГРУППЫ
# =========================

def get_group_member_ids(db: Session, group_id: int) -> List[int]:
    """
    Только участники с живыми аккаунтами.
    """
    rows = db.execute(
        select(GroupMember.user_id)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id, user_is_active())
    ).all()
    return [uid for (uid,) in rows]


def count_active_members(db: Session, group_id: int) -> int:
    return db.scalar(
        select(func.count())
        .select_from(GroupMember)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id, user_is_active())
    ) or 0
