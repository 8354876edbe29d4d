# src/routers/group_members.py
# -----------------------------------------------------------------------------
# РОУТЕР: участники групп
# -----------------------------------------------------------------------------
# Владелец меняется только передачей владения при удалении аккаунта,
# поэтому роль creator здесь не назначается и не снимается.

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from starlette import status
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.group_member import GroupMember, GroupRole
from src.models.user import User
from src.routers.groups import member_out
from src.schemas.group_member import GroupMemberCreate, GroupMemberOut, GroupMemberRoleUpdate
from src.services.events import (
    log_event,
    MEMBER_ADDED,
    MEMBER_LEFT,
    MEMBER_REMOVED,
    MEMBER_ROLE_CHANGED,
)
from src.services.group_membership import (
    add_member,
    can_join_group,
    change_role,
    get_membership,
    remove_member,
)
from src.utils.auth_dep import get_active_user
from src.utils.groups import require_manager, require_membership
from src.utils.visibility import user_is_active

router = APIRouter()


def _err(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}


@router.get("/{group_id}/members", response_model=List[GroupMemberOut])
def list_members(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    require_membership(db, group_id, current_user.id)
    rows = db.execute(
        select(GroupMember, User)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id, user_is_active())
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
    ).all()
    return [member_out(gm, u) for gm, u in rows]


@router.post("/{group_id}/members", response_model=GroupMemberOut, status_code=status.HTTP_201_CREATED)
def add_group_member(
    group_id: int,
    payload: GroupMemberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    require_manager(db, group_id, current_user.id)

    if payload.role.value == GroupRole.creator.value:
        raise HTTPException(status_code=400, detail=_err("invalid_role", "Creator role cannot be assigned directly"))

    user = db.scalar(select(User).where(User.id == payload.user_id, user_is_active()))
    if not user:
        raise HTTPException(status_code=404, detail=_err("user_not_found", "User not found"))
    if not can_join_group(db, user):
        raise HTTPException(
            status_code=403,
            detail=_err("group_limit_reached", "User reached the free tier group limit"),
        )

    try:
        gm = add_member(db, group_id, user.id, role=GroupRole(payload.role.value), actor_id=current_user.id)
    except ValueError:
        raise HTTPException(status_code=400, detail=_err("already_member", "User is already a member"))

    log_event(
        db,
        type=MEMBER_ADDED,
        actor_id=current_user.id,
        group_id=group_id,
        target_user_id=user.id,
        data={"role": payload.role.value},
    )
    db.commit()
    db.refresh(gm)
    return member_out(gm, user)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_group_member(
    group_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    actor = require_manager(db, group_id, current_user.id)
    member = get_membership(db, group_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail=_err("member_not_found", "Member not found"))
    if member.role == GroupRole.creator:
        raise HTTPException(status_code=409, detail=_err("cannot_remove_creator", "Group creator cannot be removed"))
    # админа может убрать только владелец
    if member.role == GroupRole.admin and actor.role != GroupRole.creator:
        raise HTTPException(status_code=403, detail=_err("forbidden", "Only creator can remove an admin"))

    remove_member(db, member, actor_id=current_user.id)
    log_event(db, type=MEMBER_REMOVED, actor_id=current_user.id, group_id=group_id, target_user_id=user_id)
    db.commit()
    return None


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    member = require_membership(db, group_id, current_user.id)
    if member.role == GroupRole.creator:
        raise HTTPException(
            status_code=409,
            detail=_err("creator_cannot_leave", "Creator cannot leave the group, delete it instead"),
        )
    remove_member(db, member, actor_id=current_user.id, left_voluntarily=True)
    log_event(db, type=MEMBER_LEFT, actor_id=current_user.id, group_id=group_id, target_user_id=current_user.id)
    db.commit()
    return None


@router.patch("/{group_id}/members/{user_id}/role", response_model=GroupMemberOut)
def update_member_role(
    group_id: int,
    user_id: int,
    payload: GroupMemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    actor = require_manager(db, group_id, current_user.id)
    if actor.role != GroupRole.creator:
        raise HTTPException(status_code=403, detail=_err("forbidden", "Only creator can change roles"))
    if payload.role.value == GroupRole.creator.value:
        raise HTTPException(status_code=400, detail=_err("invalid_role", "Creator role cannot be assigned directly"))

    member = get_membership(db, group_id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail=_err("member_not_found", "Member not found"))
    if member.role == GroupRole.creator:
        raise HTTPException(status_code=409, detail=_err("cannot_change_creator", "Creator role cannot be changed"))

    previous = member.role.value
    change_role(db, member, GroupRole(payload.role.value), actor_id=current_user.id)
    log_event(
        db,
        type=MEMBER_ROLE_CHANGED,
        actor_id=current_user.id,
        group_id=group_id,
        target_user_id=user_id,
        data={"previous_role": previous, "new_role": payload.role.value},
    )
    db.commit()
    db.refresh(member)
    return member_out(member, db.get(User, user_id))
