"""Likes and like notifications."""

from __future__ import annotations

import uuid

from sqlalchemy.exc import SQLAlchemyError

from app import models
from app.services.notifications import NotificationService


def _notifications(db, user):
    db.expire_all()
    return db.query(models.Notification).filter(models.Notification.user_id == user.id).all()


def test_like_notifies_author(client, db, alice, bob, make_story, headers):
    story = make_story(alice)

    response = client.post(f"/stories/{story.id}/like", headers=headers(bob))
    assert response.status_code == 200
    assert response.json()["data"] == {"is_liked": True}

    notifications = _notifications(db, alice)
    assert len(notifications) == 1
    assert notifications[0].kind == "like"
    assert notifications[0].actor_id == bob.id
    assert notifications[0].story_id == story.id


def test_like_twice_is_idempotent(client, db, alice, bob, make_story, headers):
    story = make_story(alice)

    client.post(f"/stories/{story.id}/like", headers=headers(bob))
    response = client.post(f"/stories/{story.id}/like", headers=headers(bob))
    assert response.status_code == 200

    assert db.query(models.Like).filter(models.Like.story_id == story.id).count() == 1
    # Only the first like notifies
    assert len(_notifications(db, alice)) == 1

    story_view = client.get(f"/stories/{story.id}").json()["data"]
    assert story_view["likes_count"] == 1


def test_self_like_does_not_notify(client, db, alice, make_story, headers):
    story = make_story(alice)

    response = client.post(f"/stories/{story.id}/like", headers=headers(alice))
    assert response.status_code == 200
    assert _notifications(db, alice) == []


def test_like_missing_story(client, bob, headers):
    response = client.post(f"/stories/{uuid.uuid4()}/like", headers=headers(bob))
    assert response.status_code == 404
    assert response.json()["error"] == "Story not found"


def test_unlike_and_check(client, alice, bob, make_story, headers):
    story = make_story(alice)
    client.post(f"/stories/{story.id}/like", headers=headers(bob))

    check = client.get(f"/stories/{story.id}/like/check", headers=headers(bob))
    assert check.json()["data"]["is_liked"] is True

    response = client.delete(f"/stories/{story.id}/like", headers=headers(bob))
    assert response.status_code == 200
    assert response.json()["data"] == {"is_liked": False}

    # Unliking again is a no-op
    assert client.delete(f"/stories/{story.id}/like", headers=headers(bob)).status_code == 200

    check = client.get(f"/stories/{story.id}/like/check", headers=headers(bob))
    assert check.json()["data"]["is_liked"] is False


def test_like_survives_notification_failure(
    client, db, alice, bob, make_story, headers, monkeypatch
):
    story = make_story(alice)

    def _fail(*args, **kwargs):
        raise SQLAlchemyError("notifications table unavailable")

    monkeypatch.setattr(NotificationService, "_create", _fail)

    response = client.post(f"/stories/{story.id}/like", headers=headers(bob))
    assert response.status_code == 200

    db.expire_all()
    assert db.query(models.Like).filter(models.Like.story_id == story.id).count() == 1
    assert _notifications(db, alice) == []


def test_liked_flag_in_story_view(client, alice, bob, make_story, headers):
    story = make_story(alice)
    client.post(f"/stories/{story.id}/like", headers=headers(bob))

    as_bob = client.get(f"/stories/{story.slug}", headers=headers(bob)).json()["data"]
    assert as_bob["is_liked_by_user"] is True

    anonymous = client.get(f"/stories/{story.slug}").json()["data"]
    assert anonymous["is_liked_by_user"] is False
