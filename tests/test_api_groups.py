from __future__ import annotations

from src.models.group_member import GroupRole


def _watch_payload(**overrides) -> dict:
    payload = {
        "movie": {"tmdb_id": 680, "title": "Pulp Fiction", "year": 1994},
        "watched_date": "2024-02-14",
        "rating": 8,
        "notes": "Rewatch with friends",
        "group_ids": [],
    }
    payload.update(overrides)
    return payload


def test_create_group_respects_free_tier_limit(client, make_user, auth_headers) -> None:
    user = make_user("free")
    headers = auth_headers(user)

    first = client.post("/api/groups/", json={"name": "Weekend club"}, headers=headers)
    assert first.status_code == 201
    body = first.json()
    assert body["created_by_id"] == user.id
    assert body["member_count"] == 1
    assert body["members"][0]["role"] == "creator"

    second = client.post("/api/groups/", json={"name": "Another"}, headers=headers)
    assert second.status_code == 403
    assert second.json()["detail"]["code"] == "group_limit_reached"


def test_premium_user_creates_many_groups(client, make_user, auth_headers) -> None:
    headers = auth_headers(make_user("rich", premium=True))

    for name in ("One", "Two", "Three"):
        assert client.post("/api/groups/", json={"name": name}, headers=headers).status_code == 201

    assert len(client.get("/api/groups/", headers=headers).json()) == 3


def test_member_management(client, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    friend = make_user("friend")
    group = make_group(owner)
    owner_headers = auth_headers(owner)

    added = client.post(f"/api/groups/{group.id}/members", json={"user_id": friend.id}, headers=owner_headers)
    assert added.status_code == 201
    assert added.json()["user"]["username"] == "friend"

    again = client.post(f"/api/groups/{group.id}/members", json={"user_id": friend.id}, headers=owner_headers)
    assert again.status_code == 400

    promoted = client.patch(
        f"/api/groups/{group.id}/members/{friend.id}/role",
        json={"role": "admin"},
        headers=owner_headers,
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"

    as_creator = client.patch(
        f"/api/groups/{group.id}/members/{friend.id}/role",
        json={"role": "creator"},
        headers=owner_headers,
    )
    assert as_creator.status_code == 400

    creator_leave = client.post(f"/api/groups/{group.id}/leave", headers=owner_headers)
    assert creator_leave.status_code == 409

    left = client.post(f"/api/groups/{group.id}/leave", headers=auth_headers(friend))
    assert left.status_code == 204
    assert client.get(f"/api/groups/{group.id}", headers=auth_headers(friend)).status_code == 404


def test_non_member_cannot_see_group(client, make_user, make_group, auth_headers) -> None:
    group = make_group(make_user("owner"))

    response = client.get(f"/api/groups/{group.id}", headers=auth_headers(make_user("stranger")))

    assert response.status_code == 404


def test_group_detail_hides_deactivated_members(client, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    sleeper = make_user("sleeper", deactivated=True)
    group = make_group(owner, [sleeper])

    body = client.get(f"/api/groups/{group.id}", headers=auth_headers(owner)).json()

    assert [m["user"]["id"] for m in body["members"]] == [owner.id]
    assert body["member_count"] == 1


def test_creator_deletes_group(client, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    admin = make_user("admin")
    group = make_group(owner, [(admin, GroupRole.admin)])

    assert client.delete(f"/api/groups/{group.id}", headers=auth_headers(admin)).status_code == 403
    assert client.delete(f"/api/groups/{group.id}", headers=auth_headers(owner)).status_code == 204
    assert client.get(f"/api/groups/{group.id}", headers=auth_headers(owner)).status_code == 404


def test_watches_are_shared_into_group_feed(client, db, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    critic = make_user("critic")
    group = make_group(owner, [critic])
    critic_headers = auth_headers(critic)

    shared = client.post("/api/watches/", json=_watch_payload(group_ids=[group.id]), headers=critic_headers)
    assert shared.status_code == 201
    assert shared.json()["group_ids"] == [group.id]

    private = client.post(
        "/api/watches/",
        json=_watch_payload(movie={"tmdb_id": 13, "title": "Forrest Gump"}, is_private=True),
        headers=critic_headers,
    )
    assert private.status_code == 201
    refused = client.post(
        f"/api/watches/{private.json()['id']}/share",
        json={"group_ids": [group.id]},
        headers=critic_headers,
    )
    assert refused.status_code == 400

    feed = client.get(f"/api/groups/{group.id}/feed", headers=auth_headers(owner)).json()
    assert [item["id"] for item in feed] == [shared.json()["id"]]
    assert feed[0]["rating"] == 8
    # share_notes выключен по умолчанию
    assert feed[0]["notes"] is None
    assert feed[0]["movie"]["title"] == "Pulp Fiction"

    critic.share_ratings = False
    db.commit()
    feed = client.get(f"/api/groups/{group.id}/feed", headers=auth_headers(owner)).json()
    assert feed[0]["rating"] is None


def test_feed_hides_deleted_watches_and_departed_authors(client, db, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    critic = make_user("critic")
    group = make_group(owner, [critic])
    critic_headers = auth_headers(critic)

    first = client.post("/api/watches/", json=_watch_payload(group_ids=[group.id]), headers=critic_headers).json()
    client.post(
        "/api/watches/",
        json=_watch_payload(movie={"tmdb_id": 155, "title": "The Dark Knight"}, group_ids=[group.id]),
        headers=critic_headers,
    )

    assert client.delete(f"/api/watches/{first['id']}", headers=critic_headers).status_code == 204
    feed = client.get(f"/api/groups/{group.id}/feed", headers=auth_headers(owner)).json()
    assert [item["movie"]["title"] for item in feed] == ["The Dark Knight"]

    critic.is_deactivated = True
    db.commit()
    assert client.get(f"/api/groups/{group.id}/feed", headers=auth_headers(owner)).json() == []


def test_cannot_share_into_foreign_group(client, make_user, make_group, auth_headers) -> None:
    group = make_group(make_user("owner"))

    response = client.post(
        "/api/watches/",
        json=_watch_payload(group_ids=[group.id]),
        headers=auth_headers(make_user("outsider")),
    )

    assert response.status_code == 404
