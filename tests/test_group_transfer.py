from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from src.models.event import Event
from src.models.group import Group
from src.models.group_member import GroupMember, GroupRole
from src.models.group_member_history import GroupMemberAction, GroupMemberHistory
from src.models.movie import Movie
from src.models.watch import Watch
from src.models.watch_group import WatchGroup
from src.schemas.group_transfer import GroupActionIn
from src.services.errors import (
    AuthorizationError,
    ConflictError,
    NotEligibleError,
    ValidationError,
)
from src.services.events import GROUP_DELETED, GROUP_OWNERSHIP_TRANSFERRED
from src.services.group_transfer import (
    apply_group_actions,
    get_created_groups_with_eligibility,
    validate_group_actions,
)
from src.settings import CREATOR_POLICY_ADMIN, CREATOR_POLICY_REMOVE


def _transfer(group_id: int, to_user_id: int | None) -> GroupActionIn:
    return GroupActionIn(group_id=group_id, action="transfer", transfer_to_user_id=to_user_id)


def _delete(group_id: int) -> GroupActionIn:
    return GroupActionIn(group_id=group_id, action="delete")


def _roles(db, group_id: int) -> dict[int, GroupRole]:
    rows = db.scalars(select(GroupMember).where(GroupMember.group_id == group_id)).all()
    return {m.user_id: m.role for m in rows}


# =========================
# ELIGIBILITY
# =========================


def test_only_premium_members_are_eligible_when_one_exists(db, make_user, make_group) -> None:
    owner = make_user("owner")
    free = make_user("free")
    premium = make_user("premium", premium=True)
    group = make_group(owner, [free, (premium, GroupRole.admin)])

    [info] = get_created_groups_with_eligibility(db, owner.id)

    assert info.group_id == group.id
    assert info.member_count == 3
    assert info.can_transfer is True
    assert info.auto_delete is False
    by_id = {m.user_id: m for m in info.eligible_members}
    assert owner.id not in by_id
    assert by_id[premium.id].is_eligible is True
    assert by_id[premium.id].is_admin is True
    assert by_id[free.id].is_eligible is False


def test_every_member_is_eligible_without_premium(db, make_user, make_group) -> None:
    owner = make_user("owner")
    a = make_user("a")
    b = make_user("b")
    make_group(owner, [a, b])

    [info] = get_created_groups_with_eligibility(db, owner.id)

    assert {m.user_id for m in info.eligible_members if m.is_eligible} == {a.id, b.id}


def test_solo_group_is_flagged_for_auto_delete(db, make_user, make_group) -> None:
    owner = make_user("owner", premium=True)
    make_group(owner)

    [info] = get_created_groups_with_eligibility(db, owner.id)

    assert info.member_count == 1
    assert info.eligible_members == []
    assert info.can_transfer is False
    assert info.auto_delete is True


def test_group_with_only_deactivated_members_cannot_be_transferred(db, make_user, make_group) -> None:
    owner = make_user("owner")
    sleeper = make_user("sleeper", premium=True, deactivated=True)
    make_group(owner, [sleeper])

    [info] = get_created_groups_with_eligibility(db, owner.id)

    assert info.member_count == 2
    assert info.eligible_members == []
    assert info.can_transfer is False
    assert info.auto_delete is True


def test_deactivated_premium_does_not_restrict_eligibility(db, make_user, make_group) -> None:
    owner = make_user("owner")
    free = make_user("free")
    sleeper = make_user("sleeper", premium=True, deactivated=True)
    make_group(owner, [free, sleeper])

    [info] = get_created_groups_with_eligibility(db, owner.id)

    assert [(m.user_id, m.is_eligible) for m in info.eligible_members] == [(free.id, True)]


def test_only_visible_groups_created_by_user_are_listed(db, make_user, make_group) -> None:
    owner = make_user("owner")
    other = make_user("other")
    mine = make_group(owner, [other], name="Mine")
    make_group(other, [owner], name="Theirs")
    gone = make_group(owner, name="Gone")
    gone.deleted_at = gone.created_at
    db.commit()

    infos = get_created_groups_with_eligibility(db, owner.id)

    assert [i.group_id for i in infos] == [mine.id]


# =========================
# VALIDATION
# =========================


def test_validation_requires_decision_for_transferable_groups(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])

    with pytest.raises(ValidationError) as excinfo:
        validate_group_actions(db, owner.id, [])

    assert excinfo.value.status_code == 422
    assert excinfo.value.errors == [
        {
            "group_id": group.id,
            "code": "action_required",
            "message": "A delete or transfer decision is required for this group",
        }
    ]


def test_validation_adds_auto_delete_groups_to_plan(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    shared = make_group(owner, [member], name="Shared")
    solo = make_group(owner, name="Solo")

    plan = validate_group_actions(db, owner.id, [_transfer(shared.id, member.id)])

    assert [(a.group_id, a.action, a.transfer_to_user_id) for a in plan] == [
        (shared.id, "transfer", member.id),
        (solo.id, "delete", None),
    ]


def test_validation_rejects_foreign_group_without_details(db, make_user, make_group) -> None:
    owner = make_user("owner")
    stranger = make_user("stranger")
    foreign = make_group(stranger, [owner])

    with pytest.raises(AuthorizationError) as excinfo:
        validate_group_actions(db, owner.id, [_delete(foreign.id)])

    assert excinfo.value.errors == []
    assert str(foreign.id) not in excinfo.value.message
    assert excinfo.value.status_code == 403


def test_validation_rejects_ineligible_target(db, make_user, make_group) -> None:
    owner = make_user("owner")
    free = make_user("free")
    premium = make_user("premium", premium=True)
    group = make_group(owner, [free, premium])

    with pytest.raises(NotEligibleError) as excinfo:
        validate_group_actions(db, owner.id, [_transfer(group.id, free.id)])

    assert isinstance(excinfo.value, ValidationError)
    assert excinfo.value.status_code == 409
    assert excinfo.value.errors[0]["code"] == "not_eligible"


@pytest.mark.parametrize(
    ("actions", "expected_code"),
    [
        (lambda gid: [_transfer(gid, None)], "transfer_target_required"),
        (lambda gid: [GroupActionIn(group_id=gid, action="archive")], "invalid_action"),
        (lambda gid: [_delete(gid), _delete(gid)], "duplicate_action"),
    ],
)
def test_validation_reports_per_group_errors(db, make_user, make_group, actions, expected_code) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])

    with pytest.raises(ValidationError) as excinfo:
        validate_group_actions(db, owner.id, actions(group.id))

    assert not isinstance(excinfo.value, NotEligibleError)
    assert expected_code in {e["code"] for e in excinfo.value.errors}
    assert all(e["group_id"] == group.id for e in excinfo.value.errors)


def test_validation_collects_errors_for_whole_batch(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    first = make_group(owner, [member], name="First")
    second = make_group(owner, [member], name="Second")

    with pytest.raises(ValidationError) as excinfo:
        validate_group_actions(db, owner.id, [_transfer(first.id, owner.id)])

    codes = {(e["group_id"], e["code"]) for e in excinfo.value.errors}
    assert codes == {(first.id, "not_eligible"), (second.id, "action_required")}


def test_validation_does_not_mutate(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])

    validate_group_actions(db, owner.id, [_transfer(group.id, member.id)])
    db.commit()
    db.expire_all()

    assert db.get(Group, group.id).created_by_id == owner.id
    assert _roles(db, group.id) == {owner.id: GroupRole.creator, member.id: GroupRole.member}


# =========================
# APPLY
# =========================


def test_transfer_demotes_outgoing_creator_to_admin(db, make_user, make_group) -> None:
    owner = make_user("owner")
    heir = make_user("heir")
    group = make_group(owner, [heir])

    plan = validate_group_actions(db, owner.id, [_transfer(group.id, heir.id)])
    summary = apply_group_actions(db, owner.id, plan, actor_id=owner.id, creator_policy=CREATOR_POLICY_ADMIN)
    db.commit()
    db.expire_all()

    assert summary == {"deleted": [], "transferred": [group.id]}
    assert db.get(Group, group.id).created_by_id == heir.id
    assert _roles(db, group.id) == {heir.id: GroupRole.creator, owner.id: GroupRole.admin}

    event = db.scalar(select(Event).where(Event.type == GROUP_OWNERSHIP_TRANSFERRED))
    assert event.group_id == group.id
    assert event.target_user_id == heir.id
    assert event.data["previous_owner_id"] == owner.id
    assert event.data["new_owner_id"] == heir.id
    assert event.data["outgoing_creator"] == CREATOR_POLICY_ADMIN


def test_transfer_can_remove_outgoing_creator(db, make_user, make_group) -> None:
    owner = make_user("owner")
    heir = make_user("heir")
    group = make_group(owner, [heir])

    plan = validate_group_actions(db, owner.id, [_transfer(group.id, heir.id)])
    apply_group_actions(db, owner.id, plan, actor_id=owner.id, creator_policy=CREATOR_POLICY_REMOVE)
    db.commit()

    assert _roles(db, group.id) == {heir.id: GroupRole.creator}
    left = db.scalar(
        select(GroupMemberHistory).where(
            GroupMemberHistory.group_id == group.id,
            GroupMemberHistory.user_id == owner.id,
            GroupMemberHistory.action == GroupMemberAction.left,
        )
    )
    assert left is not None
    assert left.previous_role == GroupRole.creator


def test_delete_hides_group_and_drops_links(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])
    movie = Movie(tmdb_id=603, title="The Matrix", year=1999)
    db.add(movie)
    db.flush()
    watch = Watch(user_id=member.id, movie_id=movie.id, watched_date=date(2024, 3, 1), rating=9)
    db.add(watch)
    db.flush()
    db.add(WatchGroup(watch_id=watch.id, group_id=group.id))
    db.commit()

    plan = validate_group_actions(db, owner.id, [_delete(group.id)])
    summary = apply_group_actions(db, owner.id, plan, actor_id=owner.id)
    db.commit()
    db.expire_all()

    assert summary == {"deleted": [group.id], "transferred": []}
    assert db.get(Group, group.id).deleted_at is not None
    assert _roles(db, group.id) == {}
    assert db.scalars(select(WatchGroup).where(WatchGroup.group_id == group.id)).all() == []
    # сам просмотр остаётся в дневнике автора
    assert db.get(Watch, watch.id).is_deleted is False

    event = db.scalar(select(Event).where(Event.type == GROUP_DELETED))
    assert event.data["member_count"] == 2
    assert event.data["shared_watches"] == 1


def test_apply_rechecks_target_eligibility(db, make_user, make_group) -> None:
    owner = make_user("owner")
    heir = make_user("heir")
    group = make_group(owner, [heir])
    plan = validate_group_actions(db, owner.id, [_transfer(group.id, heir.id)])

    heir.is_deactivated = True
    db.commit()

    with pytest.raises(NotEligibleError):
        apply_group_actions(db, owner.id, plan, actor_id=owner.id)
    db.rollback()

    assert db.get(Group, group.id).created_by_id == owner.id
    assert _roles(db, group.id)[owner.id] == GroupRole.creator


def test_apply_reports_conflict_when_group_disappeared(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])
    plan = validate_group_actions(db, owner.id, [_delete(group.id)])

    group.deleted_at = group.created_at
    db.commit()

    with pytest.raises(ConflictError) as excinfo:
        apply_group_actions(db, owner.id, plan, actor_id=owner.id)

    assert excinfo.value.errors[0]["group_id"] == group.id


def test_apply_maps_concurrent_update_to_conflict(db, make_user, make_group) -> None:
    owner = make_user("owner")
    heir = make_user("heir")
    group = make_group(owner, [heir])
    plan = validate_group_actions(db, owner.id, [_transfer(group.id, heir.id)])

    # другая транзакция успела поменять группу: версия в БД ушла вперёд
    table = Group.__table__
    db.execute(table.update().where(table.c.id == group.id).values(version_id=table.c.version_id + 1))

    with pytest.raises(ConflictError):
        apply_group_actions(db, owner.id, plan, actor_id=owner.id)
    db.rollback()

    assert db.get(Group, group.id).created_by_id == owner.id


def test_delete_stamps_timezone_aware_utc_time(db, make_user, make_group) -> None:
    owner = make_user("owner")
    member = make_user("member")
    group = make_group(owner, [member])

    plan = validate_group_actions(db, owner.id, [_delete(group.id)])
    apply_group_actions(db, owner.id, plan, actor_id=owner.id)

    # до commit объект ещё держит записанное значение, а не перечитанное из SQLite
    assert group.deleted_at.tzinfo is not None
    assert group.deleted_at.utcoffset() == timedelta(0)
