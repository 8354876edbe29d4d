# src/routers/watches.py
# -----------------------------------------------------------------------------
# РОУТЕР: Просмотры (дневник) и шаринг в группы
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Dict, Iterable, List

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette import status
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.group import Group
from src.models.group_member import GroupMember
from src.models.movie import Movie
from src.models.user import User
from src.models.watch import Watch
from src.models.watch_group import WatchGroup
from src.schemas.watch import MovieOut, WatchCreate, WatchOut, WatchShareRequest
from src.services.events import log_event, WATCH_SHARED
from src.services.movies import get_or_create_movie
from src.utils.auth_dep import get_active_user
from src.utils.dates import utc_now
from src.utils.visibility import group_is_visible, movie_is_visible, watch_is_visible

router = APIRouter()


def _err(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}


def _get_own_watch_or_404(db: Session, watch_id: int, user_id: int) -> Watch:
    watch = db.scalar(
        select(Watch)
        .join(Movie, Movie.id == Watch.movie_id)
        .where(Watch.id == watch_id, Watch.user_id == user_id, watch_is_visible(), movie_is_visible())
    )
    if not watch:
        raise HTTPException(status_code=404, detail=_err("watch_not_found", "Watch not found"))
    return watch


def _share(db: Session, watch: Watch, group_ids: Iterable[int], user_id: int) -> List[int]:
    """
    Расшаривает просмотр в группы, где пользователь состоит. Уже расшаренные пропускаются.
    """
    wanted = sorted(set(group_ids))
    if not wanted:
        return []

    allowed = set(
        db.scalars(
            select(Group.id)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(Group.id.in_(wanted), GroupMember.user_id == user_id, group_is_visible())
        ).all()
    )
    missing = [gid for gid in wanted if gid not in allowed]
    if missing:
        raise HTTPException(
            status_code=404,
            detail=_err("group_not_found", f"Groups not found: {', '.join(str(g) for g in missing)}"),
        )

    existing = {link.group_id for link in watch.group_links}
    added: List[int] = []
    for gid in wanted:
        if gid in existing:
            continue
        watch.group_links.append(WatchGroup(group_id=gid, shared_at=utc_now()))
        log_event(db, type=WATCH_SHARED, actor_id=user_id, group_id=gid, data={"watch_id": watch.id})
        added.append(gid)
    return added


def _watch_out(watch: Watch) -> WatchOut:
    return WatchOut(
        id=watch.id,
        user_id=watch.user_id,
        watched_date=watch.watched_date,
        rating=watch.rating,
        notes=watch.notes,
        watch_location=watch.watch_location,
        watched_with=watch.watched_with,
        is_rewatch=bool(watch.is_rewatch),
        is_private=bool(watch.is_private),
        created_at=watch.created_at,
        movie=MovieOut.model_validate(watch.movie),
        group_ids=sorted(link.group_id for link in watch.group_links),
    )


@router.post("/", response_model=WatchOut, status_code=status.HTTP_201_CREATED)
def create_watch(
    payload: WatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    if payload.group_ids and payload.is_private:
        raise HTTPException(status_code=400, detail=_err("private_watch", "Private watch cannot be shared"))

    movie = get_or_create_movie(db, payload.movie)
    watch = Watch(
        user_id=current_user.id,
        movie_id=movie.id,
        watched_date=payload.watched_date,
        rating=payload.rating,
        notes=payload.notes,
        watch_location=payload.watch_location,
        watched_with=payload.watched_with,
        is_rewatch=payload.is_rewatch,
        is_private=payload.is_private,
    )
    db.add(watch)
    db.flush()

    if payload.group_ids:
        _share(db, watch, payload.group_ids, current_user.id)

    db.commit()
    db.refresh(watch)
    return _watch_out(watch)


@router.get("/", response_model=List[WatchOut])
def list_my_watches(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    watches = db.scalars(
        select(Watch)
        .join(Movie, Movie.id == Watch.movie_id)
        .where(Watch.user_id == current_user.id, watch_is_visible(), movie_is_visible())
        .order_by(Watch.watched_date.desc(), Watch.id.desc())
        .limit(limit)
        .offset(offset)
    ).all()
    return [_watch_out(w) for w in watches]


@router.post("/{watch_id}/share", response_model=WatchOut)
def share_watch(
    watch_id: int,
    payload: WatchShareRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    watch = _get_own_watch_or_404(db, watch_id, current_user.id)
    if watch.is_private:
        raise HTTPException(status_code=400, detail=_err("private_watch", "Private watch cannot be shared"))
    _share(db, watch, payload.group_ids, current_user.id)
    db.commit()
    db.refresh(watch)
    return _watch_out(watch)


@router.delete("/{watch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_watch(
    watch_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    watch = _get_own_watch_or_404(db, watch_id, current_user.id)
    watch.is_deleted = True
    watch.deleted_at = utc_now()
    db.commit()
    return None
