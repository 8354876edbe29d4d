# src/utils/visibility.py
# ПРЕДИКАТЫ ВИДИМОСТИ ДЛЯ SOFT-DELETE.
# -----------------------------------------------------------------------------
# Каждый путь чтения явно добавляет нужный предикат в WHERE. Глобальных фильтров
# на уровне сессии нет: удалённые строки не должны попадать в выдачу.

from __future__ import annotations

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

from ..models.user import User
from ..models.group import Group
from ..models.movie import Movie
from ..models.watch import Watch
from ..models.watchlist_item import WatchlistItem


def user_is_visible() -> ColumnElement[bool]:
    """Пользователь не удалён окончательно (деактивированные видимы)."""
    return User.is_deleted.is_(False)


def user_is_active() -> ColumnElement[bool]:
    """Пользователь не удалён и не деактивирован."""
    return and_(User.is_deleted.is_(False), User.is_deactivated.is_(False))


def group_is_visible() -> ColumnElement[bool]:
    return Group.deleted_at.is_(None)


def movie_is_visible() -> ColumnElement[bool]:
    return Movie.is_deleted.is_(False)


def watch_is_visible() -> ColumnElement[bool]:
    return Watch.is_deleted.is_(False)


def watchlist_item_is_visible() -> ColumnElement[bool]:
    return WatchlistItem.is_deleted.is_(False)


def is_user_active(user: User) -> bool:
    """То же, что user_is_active(), но для уже загруженного объекта."""
    return not user.is_deleted and not user.is_deactivated
