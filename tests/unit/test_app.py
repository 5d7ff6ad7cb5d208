from __future__ import annotations

from fastapi.testclient import TestClient

from config import Config
from eventlog import InMemoryEventStore, ViewRecorder
from webserver import create_app
from webserver.pixel import PIXEL_GIF


def _client(store: InMemoryEventStore, **kwargs) -> TestClient:
    return TestClient(create_app(Config(), store, **kwargs))


def test_pixel_records_view_and_returns_gif() -> None:
    store = InMemoryEventStore()
    with _client(store) as client:
        resp = client.get("/counter.gif", params={"domain": "example.com", "page": "/home"})

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/gif"
    assert "no-store" in resp.headers["cache-control"]
    assert resp.content == PIXEL_GIF
    assert len(PIXEL_GIF) == 43
    assert [(e.domain, e.page) for e in store.events()] == [("example.com", "/home")]


def test_pixel_without_params_records_empty_strings() -> None:
    store = InMemoryEventStore()
    with _client(store) as client:
        client.get("/counter.gif")

    assert [(e.domain, e.page) for e in store.events()] == [("", "")]


def test_pixel_is_served_even_when_recording_fails() -> None:
    store = InMemoryEventStore()
    store.close()
    with _client(store) as client:
        resp = client.get("/counter.gif", params={"domain": "example.com", "page": "/home"})
        health = client.get("/health").json()

    assert resp.status_code == 200
    assert resp.content == PIXEL_GIF
    assert health["ok"] is True
    assert health["recorder"]["write_failures"] == 1


def test_stats_json_shape_and_filter() -> None:
    store = InMemoryEventStore()
    ticks = iter([1000, 2000, 3000])
    recorder = ViewRecorder(store=store, clock=lambda: next(ticks))
    with _client(store, recorder=recorder) as client:
        client.get("/counter.gif", params={"domain": "example.com", "page": "/home"})
        client.get("/counter.gif", params={"domain": "example.com", "page": "/home"})
        client.get("/counter.gif", params={"domain": "other.com", "page": "/about"})

        everything = client.get("/stats.json").json()
        filtered = client.get("/stats.json", params={"domain": "example.com", "limit": 1}).json()

    assert everything == {
        "total_events": 3,
        "unique_pages": 2,
        "latest": [
            {"ts": 3000, "domain": "other.com", "page": "/about"},
            {"ts": 2000, "domain": "example.com", "page": "/home"},
            {"ts": 1000, "domain": "example.com", "page": "/home"},
        ],
    }
    assert filtered == {
        "total_events": 2,
        "unique_pages": 1,
        "latest": [{"ts": 2000, "domain": "example.com", "page": "/home"}],
    }


def test_stats_json_rejects_negative_limit() -> None:
    with _client(InMemoryEventStore()) as client:
        resp = client.get("/stats.json", params={"limit": -1})

    assert resp.status_code == 422


def test_stats_json_reports_storage_failure() -> None:
    store = InMemoryEventStore()
    store.close()
    with _client(store) as client:
        stats = client.get("/stats.json")
        daily = client.get("/daily.json")

    assert stats.status_code == 503
    assert "closed" in stats.json()["error"]
    assert daily.status_code == 503


def test_daily_json() -> None:
    store = InMemoryEventStore()
    ticks = iter([0, 10, 86400])
    recorder = ViewRecorder(store=store, clock=lambda: next(ticks))
    with _client(store, recorder=recorder) as client:
        for _ in range(3):
            client.get("/counter.gif", params={"domain": "example.com", "page": "/home"})
        body = client.get("/daily.json").json()

    assert body == {
        "pageviews": [
            {"domain": "example.com", "page": "/home", "date": "1970-01-02", "view_count": 1},
            {"domain": "example.com", "page": "/home", "date": "1970-01-01", "view_count": 2},
        ]
    }


def test_store_is_closed_on_shutdown() -> None:
    store = InMemoryEventStore()
    with _client(store) as client:
        client.get("/health")

    assert store._closed is True
