# src/services/user_export.py
# -----------------------------------------------------------------------------
# ВЫГРУЗКА ДАННЫХ ПОЛЬЗОВАТЕЛЯ
# -----------------------------------------------------------------------------
# Форматы:
#   • json: один документ {export_date, account, watches, watchlist, groups};
#   • csv : zip-архив с watches.csv, watchlist.csv, groups.csv, account.csv.
# В выгрузку попадают только видимые строки (как в обычных списках).

from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from src.models.group import Group
from src.models.group_member import GroupMember
from src.models.movie import Movie
from src.models.watch import Watch
from src.models.watch_group import WatchGroup
from src.services.user_account import get_user
from src.services.watchlist import list_items
from src.utils.dates import utc_now
from src.utils.visibility import group_is_visible, movie_is_visible, watch_is_visible

log = logging.getLogger(__name__)

EXPORT_FORMAT_JSON = "json"
EXPORT_FORMAT_CSV = "csv"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _day(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value is not None else ""


def _watches(db: Session, user_id: int) -> List[Dict[str, Any]]:
    rows = db.execute(
        select(Watch, Movie)
        .join(Movie, Movie.id == Watch.movie_id)
        .where(Watch.user_id == user_id, watch_is_visible(), movie_is_visible())
        .order_by(Watch.watched_date.desc(), Watch.id.desc())
    ).all()

    shared: Dict[int, List[str]] = {}
    watch_ids = [w.id for w, _ in rows]
    if watch_ids:
        for watch_id, name in db.execute(
            select(WatchGroup.watch_id, Group.name)
            .join(Group, Group.id == WatchGroup.group_id)
            .where(WatchGroup.watch_id.in_(watch_ids), group_is_visible())
            .order_by(Group.name.asc())
        ).all():
            shared.setdefault(watch_id, []).append(name)

    return [
        {
            "title": m.title,
            "year": m.year,
            "tmdb_id": m.tmdb_id,
            "watched_date": w.watched_date,
            "rating": w.rating,
            "location": w.watch_location,
            "is_rewatch": bool(w.is_rewatch),
            "privacy": "Private" if w.is_private else "Shared",
            "shared_with_groups": shared.get(w.id, []),
            "notes": w.notes,
        }
        for w, m in rows
    ]


def _watchlist(db: Session, user_id: int) -> List[Dict[str, Any]]:
    return [
        {
            "title": item.movie.title,
            "year": item.movie.year,
            "tmdb_id": item.movie.tmdb_id,
            "added_date": item.added_at,
            "priority": item.priority,
            "notes": item.notes,
        }
        for item in list_items(db, user_id)
    ]


def _groups(db: Session, user_id: int) -> List[Dict[str, Any]]:
    counts = (
        select(GroupMember.group_id, func.count().label("member_count"))
        .group_by(GroupMember.group_id)
        .subquery()
    )
    rows = db.execute(
        select(Group, GroupMember, counts.c.member_count)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .join(counts, counts.c.group_id == Group.id)
        .where(GroupMember.user_id == user_id, group_is_visible())
        .order_by(Group.id.asc())
    ).all()
    return [
        {
            "name": g.name,
            "role": gm.role.value,
            "joined_date": gm.joined_at,
            "member_count": int(member_count),
        }
        for g, gm, member_count in rows
    ]


def collect_user_data(db: Session, user_id: int) -> Dict[str, Any]:
    """Собирает данные пользователя в dict (без сериализации)."""
    user = get_user(db, user_id)
    return {
        "export_date": utc_now(),
        "account": {
            "username": user.username,
            "email": user.email,
            "bio": user.bio,
            "joined_date": user.created_at,
            "is_premium": bool(user.is_premium),
            "privacy": {
                "share_watches": bool(user.share_watches),
                "share_ratings": bool(user.share_ratings),
                "share_notes": bool(user.share_notes),
            },
        },
        "watches": _watches(db, user.id),
        "watchlist": _watchlist(db, user.id),
        "groups": _groups(db, user.id),
    }


def _render_json(data: Dict[str, Any]) -> bytes:
    def _default(value):
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        raise TypeError(f"not serializable: {type(value).__name__}")

    return json.dumps(data, default=_default, ensure_ascii=False, indent=2).encode("utf-8")


def _csv(header: List[str], rows: List[List[Any]]) -> str:
    stream = io.StringIO()
    writer = csv.writer(stream)
    writer.writerow(header)
    writer.writerows(rows)
    return stream.getvalue()


def _render_csv_zip(data: Dict[str, Any]) -> bytes:
    account = data["account"]
    files = {
        "watches.csv": _csv(
            ["Title", "Year", "TMDB_ID", "Watched_Date", "Rating", "Location", "Rewatch", "Privacy",
             "Shared_With_Groups", "Notes"],
            [
                [w["title"], w["year"], w["tmdb_id"], _iso(w["watched_date"]), w["rating"], w["location"],
                 w["is_rewatch"], w["privacy"], "; ".join(w["shared_with_groups"]), w["notes"]]
                for w in data["watches"]
            ],
        ),
        "watchlist.csv": _csv(
            ["Title", "Year", "TMDB_ID", "Added_Date", "Priority", "Notes"],
            [
                [i["title"], i["year"], i["tmdb_id"], _day(i["added_date"]), i["priority"], i["notes"]]
                for i in data["watchlist"]
            ],
        ),
        "groups.csv": _csv(
            ["Group_Name", "Role", "Joined_Date", "Member_Count"],
            [[g["name"], g["role"], _day(g["joined_date"]), g["member_count"]] for g in data["groups"]],
        ),
        "account.csv": _csv(
            ["Username", "Email", "Bio", "Joined_Date", "Is_Premium"],
            [[account["username"], account["email"], account["bio"], _day(account["joined_date"]),
              account["is_premium"]]],
        ),
    }

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def export_user_data(db: Session, user_id: int, fmt: str = EXPORT_FORMAT_JSON) -> Tuple[bytes, str, str]:
    """
    Возвращает (content, media_type, filename). Неизвестный формат: ValueError.
    """
    if fmt not in (EXPORT_FORMAT_JSON, EXPORT_FORMAT_CSV):
        raise ValueError(f"unknown export format: {fmt}")

    data = collect_user_data(db, user_id)
    stamp = data["export_date"].strftime("%Y%m%d")

    if fmt == EXPORT_FORMAT_CSV:
        content = _render_csv_zip(data)
        media_type, filename = "application/zip", f"scenestack-export-{user_id}-{stamp}.zip"
    else:
        content = _render_json(data)
        media_type, filename = "application/json", f"scenestack-export-{user_id}-{stamp}.json"

    log.info(
        "data export for user %s: %s, %d watches, %d watchlist items, %d groups",
        user_id, fmt, len(data["watches"]), len(data["watchlist"]), len(data["groups"]),
    )
    return content, media_type, filename
