# src/routers/groups.py
# -----------------------------------------------------------------------------
# РОУТЕР: Группы
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette import status
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.group import Group
from src.models.group_member import GroupMember, GroupRole
from src.models.movie import Movie
from src.models.user import User
from src.models.watch import Watch
from src.models.watch_group import WatchGroup
from src.schemas.group import GroupCreate, GroupOut, GroupUpdate
from src.schemas.group_member import GroupMemberOut
from src.schemas.user import UserBasicOut
from src.schemas.watch import FeedWatchOut, MovieOut
from src.services.events import log_event, GROUP_CREATED, GROUP_UPDATED
from src.services.group_membership import add_member, can_create_group
from src.services.group_transfer import soft_delete_group
from src.utils.auth_dep import get_active_user
from src.utils.dates import utc_now
from src.utils.groups import get_group_or_404, require_creator, require_manager, require_membership
from src.utils.visibility import group_is_visible, movie_is_visible, user_is_active, watch_is_visible

router = APIRouter()


def _err(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}


# ===== Вспомогательные =======================================================

def member_out(gm: GroupMember, user: User) -> GroupMemberOut:
    return GroupMemberOut(
        id=gm.id,
        group_id=gm.group_id,
        role=gm.role.value,
        joined_at=gm.joined_at,
        user=UserBasicOut(id=user.id, username=user.username, is_premium=bool(user.is_premium)),
    )


def group_out(db: Session, group: Group) -> GroupOut:
    """
    Группа + живые участники. Удалённые и деактивированные в состав не выводятся.
    """
    rows = db.execute(
        select(GroupMember, User)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group.id, user_is_active())
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
    ).all()
    members = [member_out(gm, u) for gm, u in rows]
    return GroupOut(
        id=group.id,
        name=group.name,
        description=group.description,
        created_by_id=group.created_by_id,
        created_at=group.created_at,
        updated_at=group.updated_at,
        members=members,
        member_count=len(members),
    )


# ===== CRUD ==================================================================

@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: GroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    if not can_create_group(db, current_user):
        raise HTTPException(
            status_code=403,
            detail=_err("group_limit_reached", "Free tier allows only one own group, upgrade to premium"),
        )

    group = Group(
        name=payload.name.strip(),
        description=payload.description,
        created_by_id=current_user.id,
    )
    db.add(group)
    db.flush()

    add_member(db, group.id, current_user.id, role=GroupRole.creator, actor_id=current_user.id)
    log_event(
        db,
        type=GROUP_CREATED,
        actor_id=current_user.id,
        group_id=group.id,
        data={"name": group.name},
    )
    db.commit()
    db.refresh(group)
    return group_out(db, group)


@router.get("/", response_model=List[GroupOut])
def list_my_groups(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    groups = db.scalars(
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == current_user.id, group_is_visible())
        .order_by(Group.id.asc())
    ).all()
    return [group_out(db, g) for g in groups]


@router.get("/{group_id}", response_model=GroupOut)
def get_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    require_membership(db, group_id, current_user.id)
    return group_out(db, get_group_or_404(db, group_id))


@router.put("/{group_id}", response_model=GroupOut)
def update_group(
    group_id: int,
    payload: GroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    require_manager(db, group_id, current_user.id)
    group = get_group_or_404(db, group_id)

    group.name = payload.name.strip()
    group.description = payload.description
    log_event(
        db,
        type=GROUP_UPDATED,
        actor_id=current_user.id,
        group_id=group.id,
        data={"name": group.name},
    )
    db.commit()
    db.refresh(group)
    return group_out(db, group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    """
    Soft-delete группы. Только владелец.
    """
    group = require_creator(db, group_id, current_user.id)
    soft_delete_group(db, group, actor_id=current_user.id, now=utc_now(), reason="deleted_by_creator")
    db.commit()
    return None


# ===== Лента группы ==========================================================

@router.get("/{group_id}/feed", response_model=List[FeedWatchOut])
def group_feed(
    group_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    """
    Просмотры, расшаренные в группу. Скрыты: удалённые и приватные просмотры,
    удалённые фильмы, авторы с мёртвыми аккаунтами и выключенным share_watches.
    Оценку и заметку автор может скрыть (share_ratings / share_notes).
    """
    require_membership(db, group_id, current_user.id)

    rows = db.execute(
        select(Watch, Movie, User)
        .join(WatchGroup, WatchGroup.watch_id == Watch.id)
        .join(Movie, Movie.id == Watch.movie_id)
        .join(User, User.id == Watch.user_id)
        .where(
            WatchGroup.group_id == group_id,
            watch_is_visible(),
            Watch.is_private.is_(False),
            movie_is_visible(),
            user_is_active(),
            User.share_watches.is_(True),
        )
        .order_by(Watch.watched_date.desc(), Watch.id.desc())
        .limit(limit)
        .offset(offset)
    ).all()

    out: List[FeedWatchOut] = []
    for w, m, u in rows:
        out.append(FeedWatchOut(
            id=w.id,
            watched_date=w.watched_date,
            rating=w.rating if u.share_ratings else None,
            notes=w.notes if u.share_notes else None,
            movie=MovieOut.model_validate(m),
            user=UserBasicOut(id=u.id, username=u.username, is_premium=bool(u.is_premium)),
        ))
    return out
