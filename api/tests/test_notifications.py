"""Notification inbox."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from app import models
from app.services.notifications import NotificationService
from app.utils.dates import utcnow


@pytest.fixture()
def inbox(db, alice, bob, make_story):
    """Three notifications for alice from bob, oldest first."""
    story = make_story(alice, title="Learning the language")
    now = utcnow()
    rows = [
        models.Notification(
            user_id=alice.id,
            actor_id=bob.id,
            kind=kind,
            story_id=story.id if kind != "follow" else None,
            created_at=now - timedelta(minutes=10 - i),
        )
        for i, kind in enumerate(["follow", "like", "repost"])
    ]
    db.add_all(rows)
    db.commit()
    return [row.id for row in rows]


def test_list_newest_first_with_context(client, alice, inbox, headers):
    response = client.get("/notifications", headers=headers(alice))
    assert response.status_code == 200
    data = response.json()["data"]
    notifications = data["notifications"]
    assert [n["kind"] for n in notifications] == ["repost", "like", "follow"]
    assert notifications[0]["actor_name"] == "Bob Okafor"
    assert notifications[0]["story_title"] == "Learning the language"
    assert notifications[2]["story_title"] is None
    assert data["limit"] == 20
    assert data["offset"] == 0


def test_list_is_scoped_to_caller(client, bob, inbox, headers):
    response = client.get("/notifications", headers=headers(bob))
    assert response.json()["data"]["notifications"] == []


def test_unread_count_and_mark_read(client, alice, inbox, headers):
    assert client.get("/notifications/unread-count", headers=headers(alice)).json()["data"] == {
        "count": 3
    }

    response = client.patch(f"/notifications/{inbox[0]}/read", headers=headers(alice))
    assert response.status_code == 200
    assert client.get("/notifications/unread-count", headers=headers(alice)).json()["data"][
        "count"
    ] == 2

    # Marking an already-read notification is a no-op
    assert client.patch(f"/notifications/{inbox[0]}/read", headers=headers(alice)).status_code == 200

    unread = client.get("/notifications?unread_only=true", headers=headers(alice)).json()["data"]
    assert {n["id"] for n in unread["notifications"]} == {str(inbox[1]), str(inbox[2])}


def test_mark_read_sets_read_at(client, db, alice, inbox, headers):
    client.patch(f"/notifications/{inbox[1]}/read", headers=headers(alice))
    db.expire_all()
    notification = db.get(models.Notification, inbox[1])
    assert notification.is_read is True
    assert notification.read_at is not None


def test_mark_all_read(client, db, alice, inbox, headers):
    response = client.patch("/notifications/read-all", headers=headers(alice))
    assert response.status_code == 200
    assert client.get("/notifications/unread-count", headers=headers(alice)).json()["data"][
        "count"
    ] == 0
    assert NotificationService(db).mark_all_read(alice.id) == 0


def test_cannot_touch_someone_elses_notification(client, bob, inbox, headers):
    assert client.patch(f"/notifications/{inbox[0]}/read", headers=headers(bob)).status_code == 404
    assert client.delete(f"/notifications/{inbox[0]}", headers=headers(bob)).status_code == 404


def test_delete_notification(client, alice, inbox, headers):
    response = client.delete(f"/notifications/{inbox[0]}", headers=headers(alice))
    assert response.status_code == 200

    remaining = client.get("/notifications", headers=headers(alice)).json()["data"]["notifications"]
    assert len(remaining) == 2

    response = client.delete(f"/notifications/{uuid.uuid4()}", headers=headers(alice))
    assert response.status_code == 404
    assert response.json()["error"] == "Notification not found"


def test_pagination(client, alice, inbox, headers):
    page = client.get("/notifications?limit=2&offset=2", headers=headers(alice)).json()["data"]
    assert [n["kind"] for n in page["notifications"]] == ["follow"]


def test_notify_skips_self_and_rejects_unknown_kind(db, alice):
    service = NotificationService(db)
    assert service.notify(alice.id, alice.id, "like") is None
    with pytest.raises(ValueError):
        service.notify(alice.id, uuid.uuid4(), "mention")
