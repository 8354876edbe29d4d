from __future__ import annotations

import csv
import io
import zipfile

from src.models.group_member import GroupRole


def _watch(client, headers, group_id: int, **overrides):
    payload = {
        "movie": {"tmdb_id": 680, "title": "Pulp Fiction", "year": 1994},
        "watched_date": "2024-02-14",
        "rating": 8,
        "notes": "Royale with cheese",
        "watch_location": "Cinema",
        "group_ids": [group_id],
    }
    payload.update(overrides)
    response = client.post("/api/watches/", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


# =========================
# ПРИВАТНОСТЬ
# =========================


def test_privacy_defaults_and_partial_update(client, make_user, auth_headers) -> None:
    headers = auth_headers(make_user())

    assert client.get("/api/privacy/", headers=headers).json() == {
        "share_watches": True,
        "share_ratings": True,
        "share_notes": False,
    }

    updated = client.put("/api/privacy/", json={"share_ratings": False}, headers=headers)

    assert updated.status_code == 200
    assert updated.json() == {"share_watches": True, "share_ratings": False, "share_notes": False}
    assert client.get("/api/privacy/", headers=headers).json()["share_ratings"] is False


def test_group_feed_follows_author_privacy(client, make_user, make_group, auth_headers) -> None:
    author = make_user("author")
    reader = make_user("reader")
    group = make_group(author, [reader])
    author_headers = auth_headers(author)
    _watch(client, author_headers, group.id)

    def _feed():
        return client.get(f"/api/groups/{group.id}/feed", headers=auth_headers(reader)).json()

    [entry] = _feed()
    assert entry["rating"] == 8
    assert entry["notes"] is None

    client.put("/api/privacy/", json={"share_ratings": False, "share_notes": True}, headers=author_headers)
    [entry] = _feed()
    assert entry["rating"] is None
    assert entry["notes"] == "Royale with cheese"

    client.put("/api/privacy/", json={"share_watches": False}, headers=author_headers)
    assert _feed() == []


def test_privacy_requires_active_account(client, make_user, auth_headers) -> None:
    headers = auth_headers(make_user(deactivated=True))

    response = client.put("/api/privacy/", json={"share_notes": True}, headers=headers)

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "account_deactivated"


# =========================
# ВЫГРУЗКА ДАННЫХ
# =========================


def test_json_export_contains_account_watches_watchlist_and_groups(
    client, make_user, make_group, auth_headers
) -> None:
    owner = make_user("owner", premium=True)
    friend = make_user("friend")
    group = make_group(owner, [(friend, GroupRole.admin)], name="Cinema Club")
    headers = auth_headers(owner)
    _watch(client, headers, group.id)
    client.post(
        "/api/watchlist/",
        json={"movie": {"tmdb_id": 603, "title": "The Matrix", "year": 1999}, "notes": "soon"},
        headers=headers,
    )

    response = client.get("/api/users/export", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert 'filename="scenestack-export-' in response.headers["content-disposition"]
    assert response.headers["content-disposition"].endswith('.json"')

    body = response.json()
    assert body["export_date"]
    assert body["account"]["username"] == "owner"
    assert body["account"]["email"] == "owner@example.com"
    assert body["account"]["is_premium"] is True
    assert body["account"]["privacy"] == {"share_watches": True, "share_ratings": True, "share_notes": False}

    [watch] = body["watches"]
    assert watch["title"] == "Pulp Fiction"
    assert watch["tmdb_id"] == 680
    assert watch["watched_date"] == "2024-02-14"
    assert watch["rating"] == 8
    assert watch["location"] == "Cinema"
    assert watch["privacy"] == "Shared"
    assert watch["shared_with_groups"] == ["Cinema Club"]

    assert [(i["title"], i["priority"], i["notes"]) for i in body["watchlist"]] == [("The Matrix", 1, "soon")]
    [membership] = body["groups"]
    assert membership["name"] == "Cinema Club"
    assert membership["role"] == "creator"
    assert membership["member_count"] == 2
    assert membership["joined_date"]


def test_csv_export_is_zip_of_tables(client, make_user, make_group, auth_headers) -> None:
    owner = make_user("owner")
    group = make_group(owner, name="Cinema Club")
    headers = auth_headers(owner)
    _watch(client, headers, group.id, notes='said "hi", left')

    response = client.get("/api/users/export?format=csv", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"].endswith('.zip"')

    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert sorted(archive.namelist()) == ["account.csv", "groups.csv", "watches.csv", "watchlist.csv"]
        watches = list(csv.reader(io.StringIO(archive.read("watches.csv").decode("utf-8"))))
        groups = list(csv.reader(io.StringIO(archive.read("groups.csv").decode("utf-8"))))
        watchlist = list(csv.reader(io.StringIO(archive.read("watchlist.csv").decode("utf-8"))))
        account = list(csv.reader(io.StringIO(archive.read("account.csv").decode("utf-8"))))

    assert watches[0][:4] == ["Title", "Year", "TMDB_ID", "Watched_Date"]
    assert watches[1][0] == "Pulp Fiction"
    assert watches[1][3] == "2024-02-14"
    assert watches[1][8] == "Cinema Club"
    assert watches[1][9] == 'said "hi", left'
    assert groups[1][:2] == ["Cinema Club", "creator"]
    assert groups[1][3] == "1"
    assert watchlist == [["Title", "Year", "TMDB_ID", "Added_Date", "Priority", "Notes"]]
    assert account[1][:2] == ["owner", "owner@example.com"]


def test_export_rejects_unknown_format(client, make_user, auth_headers) -> None:
    response = client.get("/api/users/export?format=xml", headers=auth_headers(make_user()))

    assert response.status_code == 422


def test_deactivated_user_can_export(client, make_user, auth_headers) -> None:
    response = client.get("/api/users/export", headers=auth_headers(make_user(deactivated=True)))

    assert response.status_code == 200
    assert response.json()["watches"] == []
