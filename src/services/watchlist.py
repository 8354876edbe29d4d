# src/services/watchlist.py
# -----------------------------------------------------------------------------
# СПИСОК «ПОСМОТРЕТЬ ПОЗЖЕ»
# -----------------------------------------------------------------------------
# Приоритет: 1..N без дыр среди живых записей пользователя. Новая запись идёт в
# конец, удаление и перестановка перенумеровывают остальные. Без commit.

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from src.models.movie import Movie
from src.models.user import User
from src.models.watchlist_item import WatchlistItem
from src.schemas.watch import MovieIn
from src.services.movies import get_or_create_movie
from src.settings import FREE_TIER_MAX_WATCHLIST_ITEMS
from src.utils.dates import utc_now
from src.utils.visibility import movie_is_visible, watchlist_item_is_visible

log = logging.getLogger(__name__)


def _visible(user_id: int):
    return (
        select(WatchlistItem)
        .join(Movie, Movie.id == WatchlistItem.movie_id)
        .where(WatchlistItem.user_id == user_id, watchlist_item_is_visible(), movie_is_visible())
    )


def _live_items(db: Session, user_id: int) -> List[WatchlistItem]:
    # для нумерации берём и записи со скрытыми фильмами: фильм может вернуться
    return list(db.scalars(
        select(WatchlistItem)
        .where(WatchlistItem.user_id == user_id, watchlist_item_is_visible())
        .order_by(WatchlistItem.priority.asc(), WatchlistItem.id.asc())
    ).all())


def _renumber(items: List[WatchlistItem]) -> None:
    for i, item in enumerate(items, start=1):
        item.priority = i


def list_items(db: Session, user_id: int, *, limit: Optional[int] = None, offset: int = 0) -> List[WatchlistItem]:
    stmt = _visible(user_id).order_by(WatchlistItem.priority.asc(), WatchlistItem.id.asc()).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def count_items(db: Session, user_id: int) -> int:
    total = db.scalar(select(func.count()).select_from(_visible(user_id).subquery()))
    return total or 0


def get_item(db: Session, user_id: int, movie_id: int) -> Optional[WatchlistItem]:
    return db.scalar(_visible(user_id).where(WatchlistItem.movie_id == movie_id))


def can_add(db: Session, user: User) -> bool:
    """Премиум без ограничений, на бесплатном тарифе до 50 фильмов."""
    if user.is_premium:
        return True
    return count_items(db, user.id) < FREE_TIER_MAX_WATCHLIST_ITEMS


def add_item(db: Session, user: User, movie_data: MovieIn, *, notes: Optional[str] = None) -> WatchlistItem:
    """
    Добавляет фильм в конец списка. Ошибки: ValueError("watchlist_limit_reached"),
    ValueError("already_on_watchlist"). Ранее удалённая запись восстанавливается.
    """
    if not can_add(db, user):
        raise ValueError("watchlist_limit_reached")

    movie = get_or_create_movie(db, movie_data)
    existing = db.scalar(
        select(WatchlistItem).where(WatchlistItem.user_id == user.id, WatchlistItem.movie_id == movie.id)
    )
    if existing is not None and not existing.is_deleted:
        raise ValueError("already_on_watchlist")

    next_priority = len(_live_items(db, user.id)) + 1
    now = utc_now()
    if existing is not None:
        existing.is_deleted = False
        existing.deleted_at = None
        existing.notes = notes
        existing.priority = next_priority
        existing.added_at = now
        item = existing
    else:
        item = WatchlistItem(user_id=user.id, movie_id=movie.id, notes=notes, priority=next_priority, added_at=now)
        db.add(item)
    db.flush()
    log.info("watchlist: user %s added movie %s at %s", user.id, movie.id, next_priority)
    return item


def update_item(
    db: Session,
    user_id: int,
    movie_id: int,
    *,
    notes: Optional[str] = None,
    priority: Optional[int] = None,
) -> Optional[WatchlistItem]:
    item = get_item(db, user_id, movie_id)
    if item is None:
        return None

    if notes is not None:
        item.notes = notes

    if priority is not None and priority != item.priority:
        items = [i for i in _live_items(db, user_id) if i.id != item.id]
        position = min(max(priority, 1), len(items) + 1)
        items.insert(position - 1, item)
        _renumber(items)

    db.flush()
    return item


def remove_item(db: Session, user_id: int, movie_id: int) -> bool:
    item = get_item(db, user_id, movie_id)
    if item is None:
        return False

    item.is_deleted = True
    item.deleted_at = utc_now()
    _renumber([i for i in _live_items(db, user_id) if i.id != item.id])
    db.flush()
    log.info("watchlist: user %s removed movie %s", user_id, movie_id)
    return True
