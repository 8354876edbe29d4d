# src/jobs/account_cleanup.py
# ОКОНЧАТЕЛЬНОЕ УДАЛЕНИЕ ДЕАКТИВИРОВАННЫХ АККАУНТОВ (РАЗ В СУТКИ)
# -----------------------------------------------------------------------------
# Что делает этот модуль:
#   • Находит пользователей, у которых:
#       - is_deactivated = true,
#       - deactivated_at старше ACCOUNT_CLEANUP_GRACE_DAYS,
#       - is_deleted = false,
#       - есть pending_group_actions (то есть запрошено удаление, а не просто пауза),
#     применяет сохранённые решения по группам и удаляет аккаунт.
#   • Ошибка по одному аккаунту логируется и не мешает остальным.
#
# Как запускать:
#   Вариант А) Одноразовый прогон вручную:
#       >>> from src.jobs.account_cleanup import account_cleanup_once
#       >>> account_cleanup_once()
#
#   Вариант Б) Фоновая задача, стартующая на событии FastAPI startup
#       (включается переменной ACCOUNT_CLEANUP_ENABLED=1, см. main.py).

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db import SessionLocal  # создаёт новую сессию БД
from src.models.user import User
from src.services.user_account import execute_account_deletion
from src.settings import ACCOUNT_CLEANUP_GRACE_DAYS, CREATOR_AFTER_TRANSFER
from src.utils.dates import utc_now

log = logging.getLogger(__name__)


def _find_candidates(db: Session, *, now: datetime, grace_days: int) -> list[User]:
    cutoff = now - timedelta(days=grace_days)
    stmt = (
        select(User)
        .where(
            User.is_deactivated.is_(True),
            User.is_deleted.is_(False),
            User.deactivated_at.is_not(None),
            User.deactivated_at <= cutoff,
            User.pending_group_actions.is_not(None),
        )
        .order_by(User.deactivated_at.asc(), User.id.asc())
    )
    # JSON null и пустой список тоже считаем «удаление не запрошено»
    return [u for u in db.scalars(stmt).all() if u.pending_group_actions]


def account_cleanup_once(
    *,
    session_factory: Callable[[], Session] = SessionLocal,
    now: Optional[datetime] = None,
    grace_days: int = ACCOUNT_CLEANUP_GRACE_DAYS,
    creator_policy: str = CREATOR_AFTER_TRANSFER,
) -> dict:
    """
    Одноразовый прогон задачи:
      - открывает новую сессию,
      - ищет кандидатов,
      - для каждого отдельной транзакцией применяет решения и удаляет аккаунт,
      - возвращает сводку.
    """
    now = now or utc_now()
    deleted_ids: list[int] = []
    failed_ids: list[int] = []

    with session_factory() as db:
        candidates = _find_candidates(db, now=now, grace_days=grace_days)
        log.info("account-cleanup: %d account(s) scheduled for deletion", len(candidates))

        for user in candidates:
            user_id = user.id
            try:
                execute_account_deletion(db, user, actor_id=None, creator_policy=creator_policy)
                deleted_ids.append(user_id)
            except Exception:
                log.exception("account-cleanup: failed to delete account %s", user_id)
                failed_ids.append(user_id)

    summary = {
        "deleted_count": len(deleted_ids),
        "deleted_ids": deleted_ids,
        "failed_count": len(failed_ids),
        "failed_ids": failed_ids,
    }
    log.info("account-cleanup summary: %s", summary)
    return summary


async def _sleep_until_next_run(hour: int = 3, minute: int = 30) -> None:
    """
    Спит до следующего «окна» запуска (по умолчанию 03:30 по времени сервера).
    """
    now = datetime.now()
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target = target + timedelta(days=1)
    await asyncio.sleep((target - now).total_seconds())


async def _loop_daily() -> None:
    while True:
        try:
            await _sleep_until_next_run()
            account_cleanup_once()
        except Exception:
            log.exception("account-cleanup loop iteration failed")


def start_account_cleanup_loop() -> None:
    """
    Запускает фоновую задачу в текущем asyncio-цикле.
    Вызывается из FastAPI startup.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # Нет активного event loop, ничего не делаем
        return
    loop.create_task(_loop_daily())
