from __future__ import annotations
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from src.models.event import Event

# Типы событий (используй в сервисах/роутерах)
GROUP_CREATED = "group_created"
GROUP_UPDATED = "group_updated"
GROUP_DELETED = "group_deleted"
GROUP_OWNERSHIP_TRANSFERRED = "group_ownership_transferred"

MEMBER_ADDED = "member_added"
MEMBER_REMOVED = "member_removed"
MEMBER_LEFT = "member_left"
MEMBER_ROLE_CHANGED = "member_role_changed"

WATCH_SHARED = "watch_shared"

ACCOUNT_GROUP_ACTIONS_STAGED = "account_group_actions_staged"
ACCOUNT_DEACTIVATED = "account_deactivated"
ACCOUNT_REACTIVATED = "account_reactivated"
ACCOUNT_DELETED = "account_deleted"


def log_event(
    db: Session,
    *,
    type: str,
    actor_id: Optional[int],
    group_id: Optional[int] = None,
    target_user_id: Optional[int] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Event:
    """
    Единая точка записи событий. Вызывается в той же транзакции, что и бизнес-операция.
    Не делает commit: при откате операции событие тоже исчезает.
    """
    ev = Event(
        type=type,
        actor_id=actor_id,
        group_id=group_id,
        target_user_id=target_user_id,
        data=(data or {}),
    )
    db.add(ev)
    return ev
