"""Profiles, account deletion and counter repair."""

from __future__ import annotations

import uuid

from app import models
from app.services.counters import CounterService


def test_get_profile(client, alice, bob, headers):
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))

    by_username = client.get("/users/alice").json()["data"]
    assert by_username["full_name"] == "Alice Moreno"
    assert by_username["followers_count"] == 1
    assert by_username["country_of_origin"] == "Mexico"

    by_id = client.get(f"/users/{alice.id}").json()["data"]
    assert by_id["id"] == str(alice.id)

    assert client.get("/users/alice@example.com").status_code == 200
    assert client.get(f"/users/{uuid.uuid4()}").status_code == 404


def test_delete_account_releases_counters(client, db, cache, alice, bob, make_user, headers):
    carol = make_user("carol")
    community = client.post(
        "/communities", json={"name": "Newcomers"}, headers=headers(carol)
    ).json()["data"]
    carol_story = client.post(
        "/stories",
        json={
            "title": "Welcome",
            "content": "Say hi #newcomers",
            "community_id": community["id"],
            "poll": {"question": "Where from?", "options": ["North", "South"]},
        },
        headers=headers(carol),
    ).json()["data"]

    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))
    client.post(f"/follows/{carol.id}/follow", headers=headers(alice))
    client.post("/reposts", json={"story_id": carol_story["story"]["id"]}, headers=headers(alice))
    client.post(f"/communities/{community['id']}/join", headers=headers(alice))
    client.post(
        "/polls/vote",
        json={"poll_option_id": carol_story["poll"]["options"][0]["id"]},
        headers=headers(alice),
    )
    client.post(
        "/stories",
        json={"title": "Hi all", "content": "#newcomers here", "community_id": community["id"]},
        headers=headers(alice),
    )
    cache.set("suggested:users", [])

    alice_id = alice.id
    response = client.delete("/users/me", headers=headers(alice))
    assert response.status_code == 200
    assert "suggested:users" not in cache.store

    db.expire_all()
    assert db.query(models.User).filter_by(id=alice_id).first() is None
    assert db.get(models.User, bob.id).following_count == 0
    assert db.get(models.User, carol.id).followers_count == 0
    assert db.get(models.Story, uuid.UUID(carol_story["story"]["id"])).reposts_count == 0

    stored = db.get(models.Community, uuid.UUID(community["id"]))
    assert stored.member_count == 1
    assert stored.post_count == 1

    option = db.get(models.PollOption, uuid.UUID(carol_story["poll"]["options"][0]["id"]))
    assert option.votes_count == 0
    assert db.query(models.Hashtag).filter_by(name="newcomers").one().usage_count == 1

    # Nothing left for the repair pass to fix
    assert CounterService(db).repair(dry_run=True).total == 0


def test_deleted_token_no_longer_works(client, alice, headers):
    alice_headers = headers(alice)
    client.delete("/users/me", headers=alice_headers)
    assert client.get("/notifications", headers=alice_headers).status_code == 401


def test_counter_repair(db, alice, bob, make_story):
    story = make_story(alice)
    db.add(models.Follow(follower_id=bob.id, following_id=alice.id))
    db.commit()

    # Rows inserted directly leave the counters behind
    db.query(models.Story).filter_by(id=story.id).update({"reposts_count": 5})
    db.commit()

    service = CounterService(db)
    dry = service.repair(dry_run=True)
    assert dry.drifted == {
        "users.followers_count": 1,
        "users.following_count": 1,
        "stories.reposts_count": 1,
    }
    db.expire_all()
    assert db.get(models.User, alice.id).followers_count == 0

    report = service.repair()
    assert report.total == 3
    db.expire_all()
    assert db.get(models.User, alice.id).followers_count == 1
    assert db.get(models.User, bob.id).following_count == 1
    assert db.get(models.Story, story.id).reposts_count == 0

    assert service.repair().total == 0
