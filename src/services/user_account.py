# src/services/user_account.py
# -----------------------------------------------------------------------------
# ЖИЗНЕННЫЙ ЦИКЛ АККАУНТА
# -----------------------------------------------------------------------------
#   • stage_group_actions  : проверить и сохранить решения по своим группам;
#   • deactivate / reactivate: обратимая блокировка (реактивация сбрасывает решения);
#   • delete_account       : применить решения + финализировать, одной транзакцией;
#   • finalize_account     : soft-delete пользователя и очистка персональных данных.
# Все функции принимают user_id явно; текущего пользователя «из контекста» нет.

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.group_member import GroupMember, GroupRole
from src.models.group import Group
from src.models.user import User
from src.schemas.group_transfer import GroupActionIn
from src.services.errors import AccountWorkflowError, ConflictError
from src.services.events import (
    log_event,
    ACCOUNT_DEACTIVATED,
    ACCOUNT_DELETED,
    ACCOUNT_GROUP_ACTIONS_STAGED,
    ACCOUNT_REACTIVATED,
)
from src.services.group_membership import remove_member
from src.services.group_transfer import (
    apply_group_actions,
    get_created_groups_with_eligibility,
    parse_group_actions,
    validate_group_actions,
)
from src.settings import CREATOR_AFTER_TRANSFER
from src.utils.dates import utc_now
from src.utils.security import hash_password, verify_password
from src.utils.visibility import group_is_visible, user_is_visible

log = logging.getLogger(__name__)


class UserNotFoundError(AccountWorkflowError):
    code = "user_not_found"
    status_code = 404


class InvalidPasswordError(AccountWorkflowError):
    code = "invalid_password"
    status_code = 401


class GroupActionsRequiredError(AccountWorkflowError):
    """Есть свои группы с другими участниками, а решений по ним нет."""
    code = "group_actions_required"
    status_code = 409


class UsernameTakenError(AccountWorkflowError):
    code = "username_taken"
    status_code = 409


class EmailTakenError(AccountWorkflowError):
    code = "email_taken"
    status_code = 409


def get_user(db: Session, user_id: int) -> User:
    user = db.scalar(select(User).where(User.id == user_id, user_is_visible()))
    if not user:
        raise UserNotFoundError("User not found")
    return user


def _plan_to_json(plan: Sequence[GroupActionIn]) -> List[Dict[str, object]]:
    return [a.model_dump() for a in plan]


# =========================
# РЕГИСТРАЦИЯ / ПРОФИЛЬ
# =========================

def register_user(db: Session, *, username: str, email: str, password: str) -> User:
    """
    Email и username уникальны только среди живых аккаунтов: у удалённых email
    обнулён, а username заменён на deleted-user-<id>.
    """
    email = email.strip().lower()
    if db.scalar(select(User.id).where(User.email == email)):
        raise EmailTakenError("Email is already registered")
    if db.scalar(select(User.id).where(User.username == username)):
        raise UsernameTakenError("Username is already taken")

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user registered: id=%s", user.id)
    return user


def authenticate(db: Session, *, email: str, password: str) -> Optional[User]:
    user = db.scalar(select(User).where(User.email == email.strip().lower(), user_is_visible()))
    if not user or not verify_password(user.password_hash, password):
        return None
    return user


def update_profile(
    db: Session,
    user_id: int,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    bio: Optional[str] = None,
) -> User:
    user = get_user(db, user_id)

    if username and username != user.username:
        taken = db.scalar(select(User.id).where(User.username == username, User.id != user_id))
        if taken:
            raise UsernameTakenError("Username is already taken")
        user.username = username

    if email:
        email = email.strip().lower()
        if email != user.email:
            taken = db.scalar(select(User.id).where(User.email == email, User.id != user_id))
            if taken:
                raise EmailTakenError("Email is already registered")
            user.email = email

    if bio is not None:
        user.bio = bio

    db.commit()
    db.refresh(user)
    return user


def update_privacy_settings(
    db: Session,
    user_id: int,
    *,
    share_watches: Optional[bool] = None,
    share_ratings: Optional[bool] = None,
    share_notes: Optional[bool] = None,
) -> User:
    """None означает «не менять». Настройки читает лента группы."""
    user = get_user(db, user_id)
    if share_watches is not None:
        user.share_watches = share_watches
    if share_ratings is not None:
        user.share_ratings = share_ratings
    if share_notes is not None:
        user.share_notes = share_notes
    db.commit()
    db.refresh(user)
    log.info(
        "privacy settings updated: user %s (watches=%s, ratings=%s, notes=%s)",
        user.id, user.share_watches, user.share_ratings, user.share_notes,
    )
    return user


def change_password(db: Session, user_id: int, *, current_password: str, new_password: str) -> None:
    user = get_user(db, user_id)
    if not verify_password(user.password_hash, current_password):
        raise InvalidPasswordError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.commit()


# =========================
# РЕШЕНИЯ ПО ГРУППАМ
# =========================

def stage_group_actions(db: Session, user_id: int, actions: Sequence[GroupActionIn]) -> List[GroupActionIn]:
    """
    Проверяет пакет и сохраняет его в users.pending_group_actions.
    Группы не трогаются, применение только при удалении аккаунта.
    """
    user = get_user(db, user_id)
    plan = validate_group_actions(db, user.id, actions)

    user.pending_group_actions = _plan_to_json(plan)
    log_event(
        db,
        type=ACCOUNT_GROUP_ACTIONS_STAGED,
        actor_id=user.id,
        target_user_id=user.id,
        data={"actions": _plan_to_json(plan)},
    )
    db.commit()
    log.info("group actions staged for user %s: %d action(s)", user.id, len(plan))
    return plan


def _resolve_plan(db: Session, user: User) -> List[GroupActionIn]:
    """
    План для удаления аккаунта:
      • есть сохранённые решения: перепроверяем их против текущего состояния;
      • решений нет: допустимо, только если все свои группы удаляются автоматически.
    """
    staged = parse_group_actions(user.pending_group_actions)
    if staged:
        return validate_group_actions(db, user.id, staged)

    needs_decision = [g for g in get_created_groups_with_eligibility(db, user.id) if not g.auto_delete]
    if needs_decision:
        raise GroupActionsRequiredError(
            "Resolve the groups you created before deleting the account",
            errors=[
                {"group_id": g.group_id, "code": "action_required", "message": "A decision is required for this group"}
                for g in needs_decision
            ],
        )
    return validate_group_actions(db, user.id, [])


# =========================
# ДЕАКТИВАЦИЯ / РЕАКТИВАЦИЯ
# =========================

def deactivate_account(db: Session, user_id: int) -> User:
    """Идемпотентно: повторный вызов не сдвигает deactivated_at."""
    user = get_user(db, user_id)
    if not user.is_deactivated:
        user.is_deactivated = True
        user.deactivated_at = utc_now()
        log_event(db, type=ACCOUNT_DEACTIVATED, actor_id=user.id, target_user_id=user.id)
        db.commit()
        log.info("account deactivated: user %s", user.id)
    return user


def reactivate_account(db: Session, user_id: int) -> User:
    """Снимает блокировку и сбрасывает сохранённые решения по группам."""
    user = get_user(db, user_id)
    had_pending = bool(user.pending_group_actions)
    if user.is_deactivated or had_pending:
        user.is_deactivated = False
        user.deactivated_at = None
        user.pending_group_actions = None
        log_event(
            db,
            type=ACCOUNT_REACTIVATED,
            actor_id=user.id,
            target_user_id=user.id,
            data={"pending_group_actions_cleared": had_pending},
        )
        db.commit()
        log.info("account reactivated: user %s (pending actions cleared: %s)", user.id, had_pending)
    return user


# =========================
# УДАЛЕНИЕ
# =========================

def finalize_account(db: Session, user: User, *, actor_id: Optional[int]) -> None:
    """
    Soft-delete пользователя. Вызывать только после разрешения всех своих групп.
    Не делает commit.
    """
    memberships = list(db.scalars(
        select(GroupMember)
        .join(Group, Group.id == GroupMember.group_id)
        .where(GroupMember.user_id == user.id, group_is_visible())
    ).all())
    if any(m.role == GroupRole.creator for m in memberships):
        raise ConflictError("User still owns groups; resolve them before deleting the account")

    for m in memberships:
        remove_member(db, m, actor_id=actor_id, left_voluntarily=True)

    now = utc_now()
    user.is_deleted = True
    user.deleted_at = now
    user.pending_group_actions = None
    # персональные данные
    user.email = None
    user.username = f"deleted-user-{user.id}"
    user.bio = None
    user.password_hash = None

    log_event(
        db,
        type=ACCOUNT_DELETED,
        actor_id=actor_id,
        target_user_id=user.id,
        data={"left_groups": [m.group_id for m in memberships]},
    )


def execute_account_deletion(
    db: Session,
    user: User,
    *,
    actor_id: Optional[int],
    creator_policy: str = CREATOR_AFTER_TRANSFER,
) -> Dict[str, List[int]]:
    """
    План → применение → финализация → commit. Любая ошибка: rollback целиком.
    Используется и ручкой DELETE /account, и фоновой очисткой.
    """
    try:
        plan = _resolve_plan(db, user)
        summary = apply_group_actions(db, user.id, plan, actor_id=actor_id, creator_policy=creator_policy)
        finalize_account(db, user, actor_id=actor_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("account deleted: user %s, groups %s", user.id, summary)
    return summary


def delete_account(
    db: Session,
    user_id: int,
    password: str,
    *,
    creator_policy: str = CREATOR_AFTER_TRANSFER,
) -> Dict[str, List[int]]:
    user = get_user(db, user_id)
    if not verify_password(user.password_hash, password):
        log.warning("account deletion rejected for user %s: wrong password", user_id)
        raise InvalidPasswordError("Failed to delete account. Please check your password and try again.")
    return execute_account_deletion(db, user, actor_id=user.id, creator_policy=creator_policy)
