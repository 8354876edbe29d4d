# src/services/group_transfer.py
# -----------------------------------------------------------------------------
# ГРУППЫ ПЕРЕД УДАЛЕНИЕМ АККАУНТА
# -----------------------------------------------------------------------------
# Три шага, каждый в отдельной функции с явным user_id:
#   1) get_created_groups_with_eligibility: кому можно передать каждую свою группу;
#   2) validate_group_actions: проверка пакета решений целиком, без побочных эффектов;
#   3) apply_group_actions: применение пакета в транзакции вызывающего (без commit).
#
# Правило «кому можно передать»: если среди остальных живых участников есть
# премиум, то только премиум; иначе любой живой участник. Сам владелец,
# удалённые и деактивированные не рассматриваются.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.models.group import Group
from src.models.group_member import GroupMember, GroupRole
from src.models.user import User
from src.schemas.group_transfer import (
    ACTION_DELETE,
    ACTION_TRANSFER,
    EligibleTransferMember,
    GroupActionIn,
    GroupTransferEligibility,
)
from src.services.errors import (
    AuthorizationError,
    ConflictError,
    NotEligibleError,
    ValidationError,
)
from src.services.events import log_event, GROUP_DELETED, GROUP_OWNERSHIP_TRANSFERRED
from src.services.group_membership import change_role, get_membership, remove_member
from src.settings import CREATOR_POLICY_ADMIN, CREATOR_POLICY_REMOVE
from src.utils.dates import utc_now
from src.utils.visibility import group_is_visible, is_user_active

log = logging.getLogger(__name__)

_VALID_ACTIONS = (ACTION_DELETE, ACTION_TRANSFER)


# =========================
# 1) ELIGIBILITY
# =========================

def _created_groups(db: Session, user_id: int) -> List[Group]:
    stmt = (
        select(Group)
        .where(Group.created_by_id == user_id, group_is_visible())
        .order_by(Group.id.asc())
    )
    return list(db.scalars(stmt).all())


def group_eligibility(db: Session, group: Group, owner_id: int) -> GroupTransferEligibility:
    rows = db.execute(
        select(GroupMember, User)
        .join(User, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group.id)
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
    ).all()

    others = [(gm, u) for gm, u in rows if u.id != owner_id and is_user_active(u)]
    any_premium = any(u.is_premium for _, u in others)

    candidates = [
        EligibleTransferMember(
            user_id=u.id,
            username=u.username,
            is_premium=bool(u.is_premium),
            is_admin=gm.role == GroupRole.admin,
            is_eligible=bool(u.is_premium) if any_premium else True,
        )
        for gm, u in others
    ]
    can_transfer = any(c.is_eligible for c in candidates)

    return GroupTransferEligibility(
        group_id=group.id,
        group_name=group.name,
        member_count=len(rows),
        eligible_members=candidates,
        can_transfer=can_transfer,
        auto_delete=not can_transfer,
    )


def get_created_groups_with_eligibility(db: Session, user_id: int) -> List[GroupTransferEligibility]:
    """Все видимые группы, созданные пользователем, с кандидатами на владение."""
    return [group_eligibility(db, g, user_id) for g in _created_groups(db, user_id)]


def _eligible_ids(info: GroupTransferEligibility) -> set:
    return {m.user_id for m in info.eligible_members if m.is_eligible}


# =========================
# 2) ВАЛИДАЦИЯ ПАКЕТА
# =========================

def _err(group_id: int, code: str, message: str) -> Dict[str, object]:
    return {"group_id": group_id, "code": code, "message": message}


def parse_group_actions(raw: Optional[Iterable]) -> List[GroupActionIn]:
    """Принимает модели или dict'ы (например, из users.pending_group_actions)."""
    out: List[GroupActionIn] = []
    for item in raw or []:
        out.append(item if isinstance(item, GroupActionIn) else GroupActionIn.model_validate(item))
    return out


def validate_group_actions(
    db: Session,
    user_id: int,
    actions: Sequence[GroupActionIn],
) -> List[GroupActionIn]:
    """
    Проверяет пакет решений целиком и возвращает нормализованный план:
    ровно одно действие на каждую свою группу, отсортировано по group_id.
    Группы без кандидатов (auto_delete) попадают в план как delete, даже если их не прислали.

    Ошибки:
      • AuthorizationError: в пакете есть чужая/несуществующая группа (без деталей);
      • NotEligibleError: единственная проблема в неподходящих получателях;
      • ValidationError: всё остальное (дубли, пропуски, неизвестные действия).
    Никаких изменений в БД.
    """
    owned = {g.id: g for g in _created_groups(db, user_id)}

    if any(a.group_id not in owned for a in actions):
        log.warning("group actions rejected for user %s: foreign group in batch", user_id)
        raise AuthorizationError("You can only manage groups you created")

    eligibility = {gid: group_eligibility(db, g, user_id) for gid, g in owned.items()}

    errors: List[Dict[str, object]] = []
    seen: Dict[int, GroupActionIn] = {}

    for a in actions:
        if a.group_id in seen:
            errors.append(_err(a.group_id, "duplicate_action", "Only one action per group is allowed"))
            continue
        seen[a.group_id] = a

        action = (a.action or "").lower().strip()
        if action not in _VALID_ACTIONS:
            errors.append(_err(a.group_id, "invalid_action", "Action must be 'delete' or 'transfer'"))
            continue

        if action == ACTION_TRANSFER:
            if a.transfer_to_user_id is None:
                errors.append(_err(a.group_id, "transfer_target_required", "Transfer requires a target user ID"))
            elif a.transfer_to_user_id not in _eligible_ids(eligibility[a.group_id]):
                errors.append(_err(
                    a.group_id,
                    "not_eligible",
                    f"User {a.transfer_to_user_id} is not eligible to receive group ownership",
                ))

    plan: List[GroupActionIn] = []
    for gid in sorted(owned):
        a = seen.get(gid)
        if a is None:
            if eligibility[gid].auto_delete:
                plan.append(GroupActionIn(group_id=gid, action=ACTION_DELETE))
            else:
                errors.append(_err(gid, "action_required", "A delete or transfer decision is required for this group"))
            continue
        action = (a.action or "").lower().strip()
        plan.append(GroupActionIn(
            group_id=gid,
            action=action,
            transfer_to_user_id=a.transfer_to_user_id if action == ACTION_TRANSFER else None,
        ))

    if errors:
        log.warning("group actions rejected for user %s: %s", user_id, errors)
        if all(e["code"] == "not_eligible" for e in errors):
            raise NotEligibleError("Selected transfer target is no longer eligible", errors=errors)
        raise ValidationError("Group actions are invalid or incomplete", errors=errors)

    return plan


# =========================
# 3) ПРИМЕНЕНИЕ
# =========================

def soft_delete_group(
    db: Session,
    group: Group,
    *,
    actor_id: Optional[int],
    now: datetime,
    reason: str = "account_deletion",
) -> None:
    """
    Soft-delete группы + физическое удаление membership'ов и ссылок на просмотры.
    Журнал состава сохраняется (ссылается на скрытую группу).
    """
    member_count = len(group.members)
    shared_watches = len(group.watch_links)

    group.members.clear()
    group.watch_links.clear()
    group.deleted_at = now

    log_event(
        db,
        type=GROUP_DELETED,
        actor_id=actor_id,
        group_id=group.id,
        data={
            "name": group.name,
            "reason": reason,
            "member_count": member_count,
            "shared_watches": shared_watches,
        },
    )


def _transfer_group(
    db: Session,
    group: Group,
    *,
    new_owner_id: int,
    actor_id: Optional[int],
    creator_policy: str,
    now: datetime,
) -> None:
    previous_owner_id = group.created_by_id

    target = get_membership(db, group.id, new_owner_id)
    change_role(db, target, GroupRole.creator, actor_id=actor_id)
    group.created_by_id = new_owner_id

    # При удалении аккаунта finalize_account сразу убирает и понижённого админа,
    # так что итоговый состав при обеих политиках одинаков; различаются только
    # строки group_member_history (role_changed + left против одного left).
    outgoing = get_membership(db, group.id, previous_owner_id)
    if outgoing is not None:
        if creator_policy == CREATOR_POLICY_REMOVE:
            remove_member(db, outgoing, actor_id=actor_id, left_voluntarily=True)
        else:
            change_role(db, outgoing, GroupRole.admin, actor_id=actor_id)

    log_event(
        db,
        type=GROUP_OWNERSHIP_TRANSFERRED,
        actor_id=actor_id,
        group_id=group.id,
        target_user_id=new_owner_id,
        data={
            "previous_owner_id": previous_owner_id,
            "new_owner_id": new_owner_id,
            "outgoing_creator": creator_policy,
            "transferred_at": now.isoformat(),
        },
    )


def apply_group_actions(
    db: Session,
    user_id: int,
    plan: Sequence[GroupActionIn],
    *,
    actor_id: Optional[int],
    creator_policy: str = CREATOR_POLICY_ADMIN,
) -> Dict[str, List[int]]:
    """
    Применяет проверенный план в текущей транзакции. Не делает commit:
    при исключении вызывающий обязан сделать rollback, частичного результата нет.

    Перед изменениями ещё раз сверяет каждую группу с БД (владелец, кандидат):
    между staging'ом и применением состав мог поменяться.
    """
    if creator_policy not in (CREATOR_POLICY_ADMIN, CREATOR_POLICY_REMOVE):
        raise ValueError(f"unknown creator policy: {creator_policy}")

    errors: List[Dict[str, object]] = []
    resolved = []
    for item in plan:
        group = db.scalar(select(Group).where(Group.id == item.group_id, group_is_visible()))
        if group is None or group.created_by_id != user_id:
            errors.append(_err(item.group_id, "conflict", "Group was removed or changed owner"))
            continue
        if item.action == ACTION_TRANSFER:
            info = group_eligibility(db, group, user_id)
            if item.transfer_to_user_id not in _eligible_ids(info):
                errors.append(_err(
                    item.group_id,
                    "not_eligible",
                    f"User {item.transfer_to_user_id} is not eligible to receive group ownership",
                ))
                continue
        resolved.append((item, group))

    if errors:
        log.warning("apply group actions failed for user %s: %s", user_id, errors)
        if all(e["code"] == "not_eligible" for e in errors):
            raise NotEligibleError("Selected transfer target is no longer eligible", errors=errors)
        raise ConflictError("Groups changed since the actions were submitted", errors=errors)

    now = utc_now()
    summary: Dict[str, List[int]] = {"deleted": [], "transferred": []}
    for item, group in resolved:
        if item.action == ACTION_DELETE:
            soft_delete_group(db, group, actor_id=actor_id, now=now)
            summary["deleted"].append(group.id)
        else:
            _transfer_group(
                db,
                group,
                new_owner_id=item.transfer_to_user_id,
                actor_id=actor_id,
                creator_policy=creator_policy,
                now=now,
            )
            summary["transferred"].append(group.id)

    try:
        db.flush()
    except StaleDataError as e:
        log.warning("apply group actions for user %s hit a concurrent update: %s", user_id, e)
        raise ConflictError("Groups changed concurrently, fetch eligibility and resubmit") from e

    log.info("group actions applied for user %s: %s", user_id, summary)
    return summary
