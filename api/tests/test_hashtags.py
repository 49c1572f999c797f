"""Hashtag extraction, usage counters and lookups."""

from __future__ import annotations

from app import models
from app.utils.hashtags import extract_hashtags, normalize_hashtag


def _publish(client, user_headers, title, content):
    response = client.post(
        "/stories", json={"title": title, "content": content}, headers=user_headers
    )
    assert response.status_code == 201
    return response.json()["data"]


def _usage(db, name):
    db.expire_all()
    return db.query(models.Hashtag).filter_by(name=name).one().usage_count


def test_extract_hashtags():
    assert extract_hashtags("#Visa and #visa again", None, "#home_sweet_home #123 #a1") == [
        "visa",
        "home_sweet_home",
        "a1",
    ]
    assert extract_hashtags("no tags here") == []


def test_normalize_hashtag():
    assert normalize_hashtag("  #Family ") == "family"


def test_usage_counts_follow_story_lifecycle(client, db, alice, headers):
    first = _publish(client, headers(alice), "On #family", "Missing #Family and #home")
    _publish(client, headers(alice), "Again", "#family dinner")

    assert _usage(db, "family") == 2
    assert _usage(db, "home") == 1

    client.delete(f"/stories/{first['story']['id']}", headers=headers(alice))
    assert _usage(db, "family") == 1
    assert _usage(db, "home") == 0


def test_trending_and_search(client, alice, headers):
    _publish(client, headers(alice), "One", "#language #lessons")
    _publish(client, headers(alice), "Two", "#language")

    trending = client.get("/hashtags/trending").json()["data"]
    assert trending[0] == {"name": "language", "usage_count": 2}

    found = client.get("/hashtags/search?q=%23LESS").json()["data"]
    assert [h["name"] for h in found] == ["lessons"]

    # LIKE wildcards in the query match literally
    assert client.get("/hashtags/search?q=%25").json()["data"] == []


def test_get_hashtag_and_its_stories(client, alice, bob, headers):
    _publish(client, headers(alice), "Tagged", "#resilience")
    _publish(client, headers(alice), "Untagged", "plain text")

    detail = client.get("/hashtags/Resilience").json()["data"]
    assert detail["name"] == "resilience"
    assert detail["usage_count"] == 1

    stories = client.get("/hashtags/resilience/stories", headers=headers(bob)).json()["data"]
    assert [s["title"] for s in stories] == ["Tagged"]
    assert stories[0]["is_liked_by_user"] is False


def test_unknown_hashtag(client):
    response = client.get("/hashtags/nothing")
    assert response.status_code == 404
    assert response.json()["error"] == "Hashtag not found"


def test_story_list_filters_by_tag(client, alice, headers):
    _publish(client, headers(alice), "Tagged", "#food")
    _publish(client, headers(alice), "Other", "#music")

    stories = client.get("/stories?tag=%23Food").json()["data"]["stories"]
    assert [s["title"] for s in stories] == ["Tagged"]
