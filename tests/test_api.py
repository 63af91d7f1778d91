"""Tests for the REST API."""

import threading

import pytest
from fastapi.testclient import TestClient

from dappstore.registry.service import RegistryService
from web.backend.app.main import app
from web.backend.app.state import get_service


@pytest.fixture
def service():
    return RegistryService(owner="deployer", clock=lambda: 1000)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _as(caller):
    return {"X-Caller": caller}


def _register(client, caller="D", name="Foo"):
    resp = client.post(
        "/api/listings",
        json={"name": name, "url": "foo.example", "category": "defi"},
        headers=_as(caller),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_register_and_get(client):
    assert _register(client) == 0
    resp = client.get("/api/listings/0")
    assert resp.status_code == 200
    body = resp.json()
    assert body["developer"] == "D"
    assert body["active"] is True
    assert body["created_at"] == 1000
    assert body["average_x100"] == 0


def test_missing_caller_header(client):
    resp = client.post(
        "/api/listings", json={"name": "Foo", "url": "foo.example", "category": "defi"}
    )
    assert resp.status_code == 401


def test_rating_flow(client):
    _register(client)
    client.put("/api/listings/0/rating", json={"rating": 4}, headers=_as("A"))
    resp = client.put("/api/listings/0/rating", json={"rating": 2}, headers=_as("A"))
    assert resp.json() == {"id": 0, "rating_count": 1, "rating_sum": 2}
    resp = client.put("/api/listings/0/rating", json={"rating": 5}, headers=_as("B"))
    assert resp.json() == {"id": 0, "rating_count": 2, "rating_sum": 7}
    assert client.get("/api/listings/0/average").json()["average_x100"] == 350


def test_invalid_rating(client):
    _register(client)
    resp = client.put("/api/listings/0/rating", json={"rating": 0}, headers=_as("A"))
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid_rating"


def test_inactive_listing(client, service):
    _register(client)
    client.put("/api/listings/0/rating", json={"rating": 5}, headers=_as("A"))
    resp = client.put("/api/listings/0/active", json={"active": False}, headers=_as("D"))
    assert resp.status_code == 200
    assert resp.json()["active"] is False

    resp = client.put("/api/listings/0/rating", json={"rating": 3}, headers=_as("C"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "inactive_listing"
    assert service.get_rating_stats(0).rating_count == 1


def test_set_active_by_non_developer(client):
    _register(client)
    resp = client.put("/api/listings/0/active", json={"active": False}, headers=_as("X"))
    assert resp.status_code == 403
    assert resp.json()["error"] == "unauthorized"


def test_not_found(client):
    assert client.get("/api/listings/5").status_code == 404
    assert client.get("/api/listings/5/average").json()["error"] == "not_found"


def test_listings_of(client):
    _register(client, name="Foo")
    _register(client, caller="E", name="Baz")
    _register(client, name="Bar")
    resp = client.get("/api/listings/developers/D")
    assert resp.json() == {"developer": "D", "listing_ids": [0, 2]}


def test_transfer_ownership(client):
    assert client.get("/api/admin/owner").json() == {"owner": "deployer"}

    resp = client.put("/api/admin/owner", json={"new_owner": "x"}, headers=_as("mallory"))
    assert resp.status_code == 403

    resp = client.put("/api/admin/owner", json={"new_owner": ""}, headers=_as("deployer"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_argument"

    resp = client.put("/api/admin/owner", json={"new_owner": "treasury"}, headers=_as("deployer"))
    assert resp.json() == {"owner": "treasury"}


@pytest.mark.parametrize("value", [True, "4", 4.0, 3.5, None, 6])
def test_non_integer_ratings_rejected(client, service, value):
    _register(client)
    resp = client.put("/api/listings/0/rating", json={"rating": value}, headers=_as("A"))
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid_rating"
    assert service.get_rating_stats(0).rating_count == 0


def test_missing_rating_field(client):
    _register(client)
    resp = client.put("/api/listings/0/rating", json={}, headers=_as("A"))
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid_rating"


def test_error_responses_documented(client):
    schema = client.get("/openapi.json").json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    responses = schema["paths"]["/api/listings/{listing_id}/rating"]["put"]["responses"]
    assert {"403", "404", "409", "422"} <= set(responses)


def test_service_singleton_opens_once(tmp_path, monkeypatch):
    from web.backend.app import state

    monkeypatch.setenv("DAPPSTORE_STATE_FILE", str(tmp_path / "registry.json"))
    monkeypatch.setattr(state, "_service", None)

    opened = []
    delay = threading.Event()
    real_open = RegistryService.open.__func__

    def slow_open(cls, *args, **kwargs):
        opened.append(1)
        delay.wait(0.2)
        return real_open(cls, *args, **kwargs)

    monkeypatch.setattr(RegistryService, "open", classmethod(slow_open))

    results = []
    threads = [threading.Thread(target=lambda: results.append(state.get_service())) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(opened) == 1
    assert all(r is results[0] for r in results)
