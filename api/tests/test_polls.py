"""Polls: creation with a story, voting and result counts."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from app import models
from app.services.polls import PollService
from app.utils.dates import utcnow


def _create_poll_story(client, user_headers, options=("Yes", "No", "Not yet"), expires_at=None):
    poll = {"question": "Did you feel welcome?", "options": list(options)}
    if expires_at is not None:
        poll["expires_at"] = expires_at.isoformat()
    return client.post(
        "/stories",
        json={"title": "Arrival day", "content": "The first day in a new country.", "poll": poll},
        headers=user_headers,
    )


@pytest.fixture()
def poll(client, alice, headers):
    response = _create_poll_story(client, headers(alice))
    assert response.status_code == 201
    return response.json()["data"]["poll"]


def _vote(client, user_headers, option_id):
    return client.post("/polls/vote", json={"poll_option_id": option_id}, headers=user_headers)


def test_story_with_poll(poll):
    assert poll["question"] == "Did you feel welcome?"
    assert [o["option_text"] for o in poll["options"]] == ["Yes", "No", "Not yet"]
    assert [o["option_order"] for o in poll["options"]] == [0, 1, 2]
    assert poll["total_votes"] == 0
    assert poll["is_expired"] is False


@pytest.mark.parametrize(
    "options",
    [
        ["Only one"],
        [f"Option {i}" for i in range(11)],
        ["Same", "same"],
        ["Fine", "   "],
    ],
)
def test_invalid_poll_options_rejected(client, db, alice, headers, options):
    response = _create_poll_story(client, headers(alice), options=options)
    assert response.status_code == 400
    assert db.query(models.Story).count() == 0


def test_vote_counts_and_viewer_choice(client, db, bob, poll, headers):
    yes = poll["options"][0]["id"]

    response = _vote(client, headers(bob), yes)
    assert response.status_code == 200
    data = response.json()["data"]
    assert response.json()["message"] == "Vote recorded"
    assert data["total_votes"] == 1
    assert data["user_voted_option_id"] == yes
    assert data["options"][0]["votes_count"] == 1
    assert data["options"][0]["has_voted"] is True
    assert data["options"][1]["has_voted"] is False

    db.expire_all()
    assert db.get(models.PollOption, uuid.UUID(yes)).votes_count == 1


def test_second_vote_on_same_poll_rejected(client, bob, poll, headers):
    assert _vote(client, headers(bob), poll["options"][0]["id"]).status_code == 200

    response = _vote(client, headers(bob), poll["options"][1]["id"])
    assert response.status_code == 400
    assert response.json()["error"] == "You have already voted on this poll"


def test_concurrent_vote_rejected_by_constraint(client, db, bob, poll, headers, monkeypatch):
    assert _vote(client, headers(bob), poll["options"][0]["id"]).status_code == 200

    # Both requests passed the existence check before either committed
    monkeypatch.setattr(PollService, "_existing_vote", lambda self, poll_id, user_id: None)

    response = _vote(client, headers(bob), poll["options"][1]["id"])
    assert response.status_code == 400
    assert response.json()["error"] == "You have already voted on this poll"

    db.expire_all()
    assert db.query(models.PollVote).count() == 1
    assert sum(o.votes_count for o in db.query(models.PollOption).all()) == 1


def test_vote_on_expired_poll(client, db, alice, bob, headers):
    created = _create_poll_story(
        client, headers(alice), expires_at=utcnow() - timedelta(hours=1)
    ).json()["data"]
    assert created["poll"]["is_expired"] is True

    option_id = created["poll"]["options"][0]["id"]
    response = _vote(client, headers(bob), option_id)
    assert response.status_code == 400
    assert response.json()["error"] == "This poll has expired"

    db.expire_all()
    assert db.query(models.PollVote).count() == 0
    assert db.get(models.PollOption, uuid.UUID(option_id)).votes_count == 0


def test_vote_on_unknown_option(client, bob, headers):
    response = _vote(client, headers(bob), str(uuid.uuid4()))
    assert response.status_code == 404
    assert response.json()["error"] == "Poll option not found"


def test_get_poll_for_story(client, alice, bob, make_user, poll, headers):
    carol = make_user("carol")
    _vote(client, headers(bob), poll["options"][0]["id"])
    _vote(client, headers(carol), poll["options"][2]["id"])

    anonymous = client.get(f"/polls/story/{poll['story_id']}").json()["data"]
    assert anonymous["total_votes"] == 2
    assert anonymous["user_voted_option_id"] is None
    assert [o["votes_count"] for o in anonymous["options"]] == [1, 0, 1]

    as_carol = client.get(f"/polls/story/{poll['story_id']}", headers=headers(carol)).json()["data"]
    assert as_carol["user_voted_option_id"] == poll["options"][2]["id"]


def test_story_without_poll(client, alice, make_story):
    story = make_story(alice)
    response = client.get(f"/polls/story/{story.id}")
    assert response.status_code == 404
    assert response.json()["error"] == "Poll not found"
