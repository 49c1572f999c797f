"""Cached aggregate statistics."""

from __future__ import annotations

from datetime import timedelta

from app.cache import COMMUNITY_STATS_KEY, SUGGESTED_USERS_KEY, TRENDING_TOPICS_KEY
from app.services.hashtags import HashtagService
from app.utils.dates import utcnow


def _publish(client, user_headers, title, content):
    return client.post("/stories", json={"title": title, "content": content}, headers=user_headers)


def test_community_stats_are_cached(client, cache, alice, bob, make_user, make_story):
    make_user("quiet")  # no country
    make_story(alice)
    make_story(bob, created_at=utcnow() - timedelta(days=3))

    first = client.get("/stats/community").json()
    assert first["cached"] is False
    assert first["data"] == {
        "total_members": 3,
        "total_stories": 2,
        "active_now": 1,
        "countries": 2,
    }
    assert COMMUNITY_STATS_KEY in cache.store

    second = client.get("/stats/community").json()
    assert second["cached"] is True
    assert second["data"] == first["data"]


def test_trending_topics_rank_recent_hashtags(client, cache, alice, headers):
    _publish(client, headers(alice), "One", "#jobs #housing")
    _publish(client, headers(alice), "Two", "#jobs")

    first = client.get("/stats/trending").json()
    assert first["cached"] is False
    assert first["data"] == [
        {"tag": "jobs", "post_count": 2, "rank": 1},
        {"tag": "housing", "post_count": 1, "rank": 2},
    ]
    assert client.get("/stats/trending").json()["cached"] is True

    # A new tagged story drops the cached ranking
    _publish(client, headers(alice), "Three", "#housing #housing")
    assert TRENDING_TOPICS_KEY not in cache.store
    third = client.get("/stats/trending").json()
    assert third["cached"] is False
    assert [t["post_count"] for t in third["data"]] == [2, 2]


def test_trending_ignores_old_stories(client, alice, make_story, db):
    old = make_story(alice, published_at=utcnow() - timedelta(days=45))
    HashtagService(db).link_story(old.id, "#history")
    db.commit()

    assert client.get("/stats/trending").json()["data"] == []


def test_empty_trending_list_is_served_from_cache(client, cache):
    first = client.get("/stats/trending").json()
    assert first["cached"] is False
    assert cache.store[TRENDING_TOPICS_KEY] == []

    second = client.get("/stats/trending").json()
    assert second["cached"] is True
    assert second["data"] == []


def test_suggested_users_for_anonymous_are_cached(client, cache, alice, bob, make_story, headers):
    story = make_story(alice)
    client.post(f"/stories/{story.id}/like", headers=headers(bob))

    first = client.get("/stats/suggested-users").json()
    assert first["cached"] is False
    assert first["data"][0]["name"] == "Alice Moreno"
    assert first["data"][0]["story_count"] == 1
    assert SUGGESTED_USERS_KEY in cache.store

    assert client.get("/stats/suggested-users").json()["cached"] is True


def test_suggested_users_for_member(client, cache, alice, bob, make_user, headers):
    carol = make_user("carol", full_name="Carol Chen")
    # alice and carol both follow bob
    client.post(f"/follows/{bob.id}/follow", headers=headers(alice))
    client.post(f"/follows/{bob.id}/follow", headers=headers(carol))

    response = client.get("/stats/suggested-users", headers=headers(alice)).json()
    assert response["cached"] is False
    names = {u["name"]: u for u in response["data"]}
    assert "Alice Moreno" not in names
    assert names["Carol Chen"]["mutual"] == 1
    assert names["Bob Okafor"]["mutual"] == 0
    assert SUGGESTED_USERS_KEY not in cache.store


def test_suggested_users_limit(client, make_user):
    for i in range(4):
        make_user(f"member{i}")
    data = client.get("/stats/suggested-users?limit=2").json()["data"]
    assert len(data) == 2
