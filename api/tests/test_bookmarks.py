"""Bookmarks."""

from __future__ import annotations

import uuid

from app import models


def test_bookmark_lifecycle(client, db, alice, bob, make_story, headers):
    story = make_story(alice, title="Saving for later", slug="saving-for-later")

    response = client.post("/bookmarks", json={"story_id": str(story.id)}, headers=headers(bob))
    assert response.status_code == 200
    # Idempotent
    assert client.post(
        "/bookmarks", json={"story_id": str(story.id)}, headers=headers(bob)
    ).status_code == 200
    assert db.query(models.Bookmark).count() == 1

    listed = client.get("/bookmarks", headers=headers(bob)).json()["data"]
    assert len(listed) == 1
    assert listed[0]["title"] == "Saving for later"
    assert listed[0]["author_name"] == "Alice Moreno"

    view = client.get("/stories/saving-for-later", headers=headers(bob)).json()["data"]
    assert view["is_bookmarked_by_user"] is True

    assert client.delete(f"/bookmarks/{story.id}", headers=headers(bob)).status_code == 200
    assert client.delete(f"/bookmarks/{story.id}", headers=headers(bob)).status_code == 200
    assert client.get("/bookmarks", headers=headers(bob)).json()["data"] == []


def test_bookmarks_are_private(client, alice, bob, make_story, headers):
    story = make_story(alice)
    client.post("/bookmarks", json={"story_id": str(story.id)}, headers=headers(bob))
    assert client.get("/bookmarks", headers=headers(alice)).json()["data"] == []


def test_bookmark_missing_story(client, bob, headers):
    response = client.post("/bookmarks", json={"story_id": str(uuid.uuid4())}, headers=headers(bob))
    assert response.status_code == 404
