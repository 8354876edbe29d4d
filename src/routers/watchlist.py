# src/routers/watchlist.py
# -----------------------------------------------------------------------------
# РОУТЕР: Watchlist («посмотреть позже»)
# -----------------------------------------------------------------------------
# Записи адресуются по movie_id (локальный id фильма), как в дневнике просмотров.

from __future__ import annotations

import math
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette import status
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.user import User
from src.schemas.watchlist import (
    WatchlistAddRequest,
    WatchlistCountOut,
    WatchlistItemOut,
    WatchlistPage,
    WatchlistUpdateRequest,
)
from src.services import watchlist as watchlist_service
from src.utils.auth_dep import get_active_user

router = APIRouter()


def _err(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail=_err("watchlist_item_not_found", "Watchlist item not found"))


@router.get("/", response_model=WatchlistPage)
def get_watchlist(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    total = watchlist_service.count_items(db, current_user.id)
    items = watchlist_service.list_items(db, current_user.id, limit=page_size, offset=(page - 1) * page_size)
    return WatchlistPage(
        items=[WatchlistItemOut.model_validate(i) for i in items],
        total_count=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
        has_more=page * page_size < total,
    )


@router.get("/count", response_model=WatchlistCountOut)
def get_watchlist_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    return {"count": watchlist_service.count_items(db, current_user.id)}


@router.post("/", response_model=WatchlistItemOut, status_code=status.HTTP_201_CREATED)
def add_to_watchlist(
    payload: WatchlistAddRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    try:
        item = watchlist_service.add_item(db, current_user, payload.movie, notes=payload.notes)
    except ValueError as e:
        db.rollback()
        if str(e) == "watchlist_limit_reached":
            raise HTTPException(
                status_code=403,
                detail=_err("watchlist_limit_reached", "Free tier watchlist limit reached, upgrade to premium"),
            )
        if str(e) == "already_on_watchlist":
            raise HTTPException(
                status_code=409,
                detail=_err("already_on_watchlist", "This movie is already on your watchlist"),
            )
        raise
    db.commit()
    db.refresh(item)
    return item


@router.put("/{movie_id}", response_model=WatchlistItemOut)
def update_watchlist_item(
    movie_id: int,
    payload: WatchlistUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    item = watchlist_service.update_item(
        db, current_user.id, movie_id, notes=payload.notes, priority=payload.priority
    )
    if item is None:
        raise _not_found()
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_from_watchlist(
    movie_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    if not watchlist_service.remove_item(db, current_user.id, movie_id):
        raise _not_found()
    db.commit()
    return None
