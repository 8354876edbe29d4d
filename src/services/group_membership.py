from __future__ import annotations
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from src.models.group_member import GroupMember, GroupRole
from src.models.group_member_history import GroupMemberHistory, GroupMemberAction
from src.models.user import User
from src.settings import FREE_TIER_MAX_CREATED_GROUPS, FREE_TIER_MAX_JOINED_GROUPS
from src.models.group import Group
from src.utils.dates import utc_now
from src.utils.visibility import group_is_visible, user_is_active


def get_membership(db: Session, group_id: int, user_id: int) -> Optional[GroupMember]:
    return db.scalar(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
        )
    )


def is_member(db: Session, group_id: int, user_id: int) -> bool:
    return get_membership(db, group_id, user_id) is not None


def active_members(db: Session, group_id: int) -> List[GroupMember]:
    """
    Участники группы с живыми аккаунтами (не удалены, не деактивированы).
    Порядок: роль не важна, по дате вступления.
    """
    stmt = (
        select(GroupMember)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id, user_is_active())
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
    )
    return list(db.scalars(stmt).all())


def record_history(
    db: Session,
    *,
    group_id: int,
    user_id: int,
    action: GroupMemberAction,
    actor_id: Optional[int],
    previous_role: Optional[GroupRole] = None,
    new_role: Optional[GroupRole] = None,
) -> GroupMemberHistory:
    """
    Добавляет строку в журнал состава. Не делает commit.
    """
    row = GroupMemberHistory(
        group_id=group_id,
        user_id=user_id,
        action=action,
        actor_id=actor_id,
        previous_role=previous_role,
        new_role=new_role,
        timestamp=utc_now(),
    )
    db.add(row)
    return row


def add_member(
    db: Session,
    group_id: int,
    user_id: int,
    *,
    role: GroupRole = GroupRole.member,
    actor_id: Optional[int],
) -> GroupMember:
    """
    Создаёт membership и пишет историю. Дубликаты: ValueError("already_member").
    """
    if is_member(db, group_id, user_id):
        raise ValueError("already_member")

    gm = GroupMember(group_id=group_id, user_id=user_id, role=role, joined_at=utc_now())
    db.add(gm)
    record_history(
        db,
        group_id=group_id,
        user_id=user_id,
        action=GroupMemberAction.added,
        actor_id=actor_id,
        new_role=role,
    )
    return gm


def remove_member(
    db: Session,
    member: GroupMember,
    *,
    actor_id: Optional[int],
    left_voluntarily: bool = False,
) -> None:
    record_history(
        db,
        group_id=member.group_id,
        user_id=member.user_id,
        action=GroupMemberAction.left if left_voluntarily else GroupMemberAction.removed,
        actor_id=actor_id,
        previous_role=member.role,
    )
    db.delete(member)


def change_role(
    db: Session,
    member: GroupMember,
    new_role: GroupRole,
    *,
    actor_id: Optional[int],
) -> GroupMember:
    previous = member.role
    if previous == new_role:
        return member
    member.role = new_role
    record_history(
        db,
        group_id=member.group_id,
        user_id=member.user_id,
        action=GroupMemberAction.role_changed,
        actor_id=actor_id,
        previous_role=previous,
        new_role=new_role,
    )
    return member


# =========================
# ЛИМИТЫ ТАРИФА
# =========================

def can_create_group(db: Session, user: User) -> bool:
    """Премиум без ограничений, на бесплатном тарифе одна своя группа."""
    if user.is_premium:
        return True
    created = db.scalar(
        select(func.count())
        .select_from(Group)
        .where(Group.created_by_id == user.id, group_is_visible())
    )
    return (created or 0) < FREE_TIER_MAX_CREATED_GROUPS


def can_join_group(db: Session, user: User) -> bool:
    """Бесплатный тариф: до двух чужих групп (плюс своя)."""
    if user.is_premium:
        return True
    joined = db.scalar(
        select(func.count())
        .select_from(GroupMember)
        .join(Group, Group.id == GroupMember.group_id)
        .where(
            GroupMember.user_id == user.id,
            GroupMember.role != GroupRole.creator,
            group_is_visible(),
        )
    )
    return (joined or 0) < FREE_TIER_MAX_JOINED_GROUPS
