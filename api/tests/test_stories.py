"""Story publishing, listing, reads and deletion."""

from __future__ import annotations

from datetime import timedelta

from app import models
from app.cache import TRENDING_TOPICS_KEY
from app.utils.dates import utcnow


def _publish(client, user_headers, **fields):
    payload = {"title": "Finding work abroad", "content": "It took me a year."}
    payload.update(fields)
    return client.post("/stories", json=payload, headers=user_headers)


def test_publish_story(client, alice, headers):
    response = _publish(
        client, headers(alice), content="New job at last #work #NewBeginnings", category="work"
    )
    assert response.status_code == 201
    data = response.json()["data"]
    story = data["story"]
    assert story["slug"] == "finding-work-abroad"
    assert story["status"] == "published"
    assert story["published_at"] is not None
    assert story["author_name"] == "Alice Moreno"
    assert story["likes_count"] == 0
    assert data["poll"] is None
    assert data["hashtags"] == ["work", "newbeginnings"]


def test_publish_requires_auth(client):
    assert _publish(client, {}).status_code == 401


def test_publish_rejects_blank_title(client, alice, headers):
    assert _publish(client, headers(alice), title="   ").status_code == 400


def test_duplicate_titles_get_unique_slugs(client, alice, headers):
    first = _publish(client, headers(alice)).json()["data"]["story"]["slug"]
    second = _publish(client, headers(alice)).json()["data"]["story"]["slug"]
    assert first == "finding-work-abroad"
    assert second == "finding-work-abroad-2"


def test_publish_into_missing_community(client, alice, headers):
    response = _publish(client, headers(alice), community_id="00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["error"] == "Community not found"


def test_publish_invalidates_trending_cache(client, cache, alice, headers):
    cache.set(TRENDING_TOPICS_KEY, [{"tag": "old", "post_count": 1, "rank": 1}])
    _publish(client, headers(alice), content="Hello #world")
    assert TRENDING_TOPICS_KEY not in cache.store


def test_get_by_slug_and_id_counts_views(client, alice, make_story):
    story = make_story(alice, slug="my-journey")

    first = client.get("/stories/my-journey").json()["data"]
    second = client.get(f"/stories/{story.id}").json()["data"]
    assert first["id"] == str(story.id)
    assert first["views_count"] == 1
    assert second["views_count"] == 2


def test_get_missing_story(client):
    response = client.get("/stories/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "data": None, "error": "Story not found"}


def test_list_recent_with_pagination(client, alice, make_story):
    now = utcnow()
    for i in range(3):
        make_story(alice, title=f"Story {i}", published_at=now - timedelta(hours=3 - i))

    data = client.get("/stories?limit=2").json()["data"]
    assert [s["title"] for s in data["stories"]] == ["Story 2", "Story 1"]
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    page_two = client.get("/stories?limit=2&page=2").json()["data"]
    assert [s["title"] for s in page_two["stories"]] == ["Story 0"]


def test_list_filters_by_category_and_search(client, alice, make_story):
    make_story(alice, title="Visa paperwork", category="legal")
    make_story(alice, title="Cooking at home", category="food", content="Arepas every Sunday")

    legal = client.get("/stories?category=legal").json()["data"]["stories"]
    assert [s["title"] for s in legal] == ["Visa paperwork"]

    found = client.get("/stories?search=AREPAS").json()["data"]["stories"]
    assert [s["title"] for s in found] == ["Cooking at home"]


def test_list_following(client, alice, bob, make_user, make_story, headers):
    carol = make_user("carol")
    make_story(alice, title="From Alice")
    make_story(carol, title="From Carol")
    client.post(f"/follows/{alice.id}/follow", headers=headers(bob))

    feed = client.get("/stories?filter=following", headers=headers(bob)).json()["data"]
    assert [s["title"] for s in feed["stories"]] == ["From Alice"]
    assert feed["pagination"]["total"] == 1

    anonymous = client.get("/stories?filter=following").json()["data"]
    assert anonymous["stories"] == []


def test_list_trending_orders_by_likes(client, alice, bob, make_user, make_story, headers):
    carol = make_user("carol")
    quiet = make_story(alice, title="Quiet")
    popular = make_story(alice, title="Popular", published_at=utcnow() - timedelta(days=1))
    client.post(f"/stories/{popular.id}/like", headers=headers(bob))
    client.post(f"/stories/{popular.id}/like", headers=headers(carol))
    client.post(f"/stories/{quiet.id}/like", headers=headers(bob))

    stories = client.get("/stories?filter=trending").json()["data"]["stories"]
    assert [s["title"] for s in stories] == ["Popular", "Quiet"]
    assert stories[0]["likes_count"] == 2


def test_list_rejects_unknown_filter(client):
    assert client.get("/stories?filter=hot").status_code == 400


def test_delete_story_requires_owner(client, db, alice, bob, make_story, headers):
    story = make_story(alice)
    story_id = story.id
    assert client.delete(f"/stories/{story.id}", headers=headers(bob)).status_code == 403

    assert client.delete(f"/stories/{story.id}", headers=headers(alice)).status_code == 200
    db.expire_all()
    assert db.query(models.Story).filter_by(id=story_id).first() is None


def test_delete_story_cascades_interactions(client, db, alice, bob, make_story, headers):
    story = make_story(alice)
    client.post(f"/stories/{story.id}/like", headers=headers(bob))
    client.post("/comments", json={"story_id": str(story.id), "content": "hi"}, headers=headers(bob))
    client.post("/bookmarks", json={"story_id": str(story.id)}, headers=headers(bob))

    assert client.delete(f"/stories/{story.id}", headers=headers(alice)).status_code == 200
    db.expire_all()
    assert db.query(models.Like).count() == 0
    assert db.query(models.Comment).count() == 0
    assert db.query(models.Bookmark).count() == 0
    assert db.query(models.Notification).count() == 0
