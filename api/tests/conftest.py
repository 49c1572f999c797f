from __future__ import annotations

import fnmatch
import itertools
import os
from typing import Any, Callable, Generator

# Must be set before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-immigrant-voices-api-0123456789"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app import models  # noqa: E402
from app.auth import create_access_token  # noqa: E402
from app.db import Base, SessionLocal, engine  # noqa: E402
from app.deps import get_cache  # noqa: E402
from app.main import app  # noqa: E402
from app.utils.dates import utcnow  # noqa: E402

_seq = itertools.count(1)


class FakeCache:
    """In-process stand-in for the Redis cache."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}

    @property
    def available(self) -> bool:
        return True

    def get(self, key: str) -> Any | None:
        return self.store.get(key)

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = value
        return True

    def invalidate(self, pattern: str) -> int:
        keys = [key for key in self.store if fnmatch.fnmatch(key, pattern)]
        for key in keys:
            del self.store[key]
        return len(keys)


@pytest.fixture(autouse=True)
def schema() -> Generator[None, None, None]:
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture()
def cache() -> Generator[FakeCache, None, None]:
    fake = FakeCache()
    app.dependency_overrides[get_cache] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_cache, None)


@pytest.fixture()
def client(cache: FakeCache) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_user(db: Session) -> Callable[..., models.User]:
    def _make(username: str | None = None, **fields: Any) -> models.User:
        n = next(_seq)
        username = username or f"user{n}"
        user = models.User(
            email=fields.pop("email", f"{username}@example.com"),
            username=username,
            full_name=fields.pop("full_name", f"User {n}"),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_story(db: Session) -> Callable[..., models.Story]:
    def _make(author: models.User, title: str | None = None, **fields: Any) -> models.Story:
        n = next(_seq)
        title = title or f"Story {n}"
        story = models.Story(
            author_id=author.id,
            title=title,
            slug=fields.pop("slug", f"story-{n}"),
            content=fields.pop("content", f"Content of story {n}"),
            published_at=fields.pop("published_at", utcnow()),
            **fields,
        )
        db.add(story)
        db.commit()
        db.refresh(story)
        return story

    return _make


@pytest.fixture()
def alice(make_user) -> models.User:
    return make_user("alice", full_name="Alice Moreno", country_of_origin="Mexico")


@pytest.fixture()
def bob(make_user) -> models.User:
    return make_user("bob", full_name="Bob Okafor", country_of_origin="Nigeria")


def auth_headers(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


@pytest.fixture()
def headers() -> Callable[[models.User], dict[str, str]]:
    return auth_headers
