from __future__ import annotations

from app.cache import NullCache
from app.deps import get_cache
from app.main import app


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["uptime_s"] >= 0


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_cache_health_available(client):
    response = client.get("/health/cache")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_cache_health_unavailable(client):
    app.dependency_overrides[get_cache] = NullCache
    response = client.get("/health/cache")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Cache unavailable"
