"""Follows, follow counters and follow notifications."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from app import models
from app.services import follows as follows_service
from app.services.counters import increment
from app.services.follows import FollowService


def _counts(db, user):
    db.expire_all()
    fresh = db.get(models.User, user.id)
    return fresh.followers_count, fresh.following_count


def test_follow_updates_counters_and_notifies(client, db, alice, bob, headers):
    response = client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert response.status_code == 200
    assert response.json()["data"] == {"is_following": True}
    assert response.json()["message"] == "Successfully followed user"

    assert _counts(db, alice) == (1, 0)
    assert _counts(db, bob) == (0, 1)

    notification = db.query(models.Notification).one()
    assert notification.user_id == alice.id
    assert notification.actor_id == bob.id
    assert notification.kind == "follow"
    assert notification.story_id is None


def test_follow_by_username(client, alice, bob, headers):
    response = client.post("/follows/Alice/follow", headers=headers(bob))
    assert response.status_code == 200


def test_follow_self_rejected(client, db, alice, headers):
    response = client.post(f"/follows/{alice.id}/follow", headers=headers(alice))
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot follow yourself"
    assert _counts(db, alice) == (0, 0)


def test_follow_twice_rejected(client, db, alice, bob, headers):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    response = client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert response.status_code == 400
    assert response.json()["error"] == "Already following this user"
    assert _counts(db, alice) == (1, 0)


def test_concurrent_follow_maps_to_conflict(client, db, alice, bob, headers, monkeypatch):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    monkeypatch.setattr(FollowService, "_exists", lambda self, follower_id, following_id: False)

    response = client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert response.status_code == 400
    assert _counts(db, alice) == (1, 0)
    assert _counts(db, bob) == (0, 1)


def test_follow_rolled_back_when_counter_update_fails(db, alice, bob, monkeypatch):
    calls = []

    def _fail_on_second(session, column, *where, **kwargs):
        calls.append(column.key)
        if len(calls) == 2:
            raise OperationalError("UPDATE users", {}, Exception("connection lost"))
        return increment(session, column, *where, **kwargs)

    monkeypatch.setattr(follows_service, "increment", _fail_on_second)

    with pytest.raises(OperationalError):
        FollowService(db).follow(alice.id, bob)

    assert calls == ["following_count", "followers_count"]
    assert db.query(models.Follow).count() == 0
    assert _counts(db, alice) == (0, 0)
    assert _counts(db, bob) == (0, 0)
    assert db.query(models.Notification).count() == 0


def test_follow_unknown_user(client, bob, headers):
    response = client.post("/follows/nobody/follow", headers=headers(bob))
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"


def test_unfollow_is_idempotent(client, db, alice, bob, headers):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))

    response = client.delete(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert response.status_code == 200
    assert response.json()["data"] == {"is_following": False}
    assert _counts(db, alice) == (0, 0)
    assert _counts(db, bob) == (0, 0)

    response = client.delete(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert response.status_code == 200
    assert _counts(db, alice) == (0, 0)


def test_counters_never_negative(client, db, alice, bob, headers):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    db.query(models.User).update({"followers_count": 0, "following_count": 0})
    db.commit()

    client.delete(f"/follows/{alice.id}/follow", headers=headers(bob))
    assert _counts(db, alice) == (0, 0)
    assert _counts(db, bob) == (0, 0)


def test_check_and_mutual(client, alice, bob, headers):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))

    check = client.get(f"/follows/{alice.id}/check", headers=headers(bob)).json()["data"]
    assert check == {"is_following": True}

    mutual = client.get(f"/follows/{alice.id}/mutual", headers=headers(bob)).json()["data"]
    assert mutual == {"is_following": True, "is_follower": False, "is_mutual": False}

    client.post(f"/follows/{bob.id}/follow", headers=headers(alice))
    mutual = client.get(f"/follows/{alice.id}/mutual", headers=headers(bob)).json()["data"]
    assert mutual["is_mutual"] is True


def test_followers_and_following_lists(client, alice, bob, make_user, headers):
    carol = make_user("carol", full_name="Carol Chen")
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    client.post(f"/follows/{alice.id}/follow", headers=headers(carol))

    followers = client.get(f"/follows/{alice.id}/followers").json()["data"]
    assert {u["full_name"] for u in followers["users"]} == {"Bob Okafor", "Carol Chen"}
    assert followers["limit"] == 20
    assert followers["offset"] == 0
    assert all("followed_at" in u for u in followers["users"])

    following = client.get(f"/follows/{bob.id}/following").json()["data"]
    assert [u["id"] for u in following["users"]] == [str(alice.id)]

    page = client.get(f"/follows/{alice.id}/followers?limit=1&offset=1").json()["data"]
    assert len(page["users"]) == 1


def test_follow_list_limit_is_bounded(client, alice):
    response = client.get(f"/follows/{alice.id}/followers?limit=1000")
    assert response.status_code == 400
