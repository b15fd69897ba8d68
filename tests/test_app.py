import json

import pytest
from fastapi.testclient import TestClient

import bookmarks
from api.app import create_app, parse_position
from scheduler import PersistenceScheduler
from settings import Settings


@pytest.fixture
def store():
    return bookmarks.BookmarkStore()


@pytest.fixture
def client(store, tmp_path):
    settings = Settings(storage_path=str(tmp_path / "bm.json"))
    return TestClient(create_app(store=store, settings=settings))


def test_index(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Bookmarker" in resp.text


def test_set_then_get(client, store):
    resp = client.post("/bookmark/set", data={"item": "abc", "time": "1234"})
    assert resp.status_code == 200
    assert store.get("abc") == 1234

    resp = client.get("/bookmark/get", params={"item": "abc"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/json"
    assert resp.json() == {"time": 1234}


def test_set_accepts_multipart_form(client, store):
    resp = client.post("/bookmark/set", files={"item": (None, "ep2"), "time": (None, "99")})
    assert resp.status_code == 200
    assert store.get("ep2") == 99


def test_get_unknown_item_returns_zero(client):
    assert client.get("/bookmark/get", params={"item": "nope"}).json() == {"time": 0}


def test_get_without_item_uses_empty_key(client, store):
    store.set("", 17)
    assert client.get("/bookmark/get").json() == {"time": 17}


@pytest.mark.parametrize("raw", ["abc", "", "12.5", " 7", "1" * 5000])
def test_malformed_time_stores_zero(client, store, raw):
    store.set("ep1", 55)
    resp = client.post("/bookmark/set", data={"item": "ep1", "time": raw})
    assert resp.status_code == 200
    assert client.get("/bookmark/get", params={"item": "ep1"}).json() == {"time": 0}


def test_set_reads_query_string_fields(client, store):
    resp = client.post("/bookmark/set?item=abc&time=1234")
    assert resp.status_code == 200
    assert store.get("abc") == 1234


def test_set_prefers_body_over_query_string(client, store):
    resp = client.post("/bookmark/set?item=q&time=1", data={"item": "body", "time": "2"})
    assert resp.status_code == 200
    assert store.get("body") == 2
    assert store.get("q") == 0


def test_set_without_fields(client, store):
    resp = client.post("/bookmark/set")
    assert resp.status_code == 200
    assert store.get("") == 0
    assert store.dirty


def test_parse_position():
    assert parse_position("42") == 42
    assert parse_position("-3") == -3
    assert parse_position("+8") == 8
    assert parse_position("x1") == 0
    assert parse_position(None) == 0
    assert parse_position("9" * 5000) == 0


def test_lifespan_hydrates_and_flushes_on_shutdown(tmp_path):
    path = tmp_path / "bm.json"
    path.write_text(json.dumps({"abc": 1234}), encoding="utf-8")
    settings = Settings(storage_path=str(path), flush_interval=3600)
    app = create_app(settings=settings)

    with TestClient(app) as client:
        assert client.get("/bookmark/get", params={"item": "abc"}).json() == {"time": 1234}
        assert app.state.scheduler.running
        client.post("/bookmark/set", data={"item": "ep2", "time": "99"})

    assert not app.state.scheduler.running
    assert json.loads(path.read_text(encoding="utf-8")) == {"abc": 1234, "ep2": 99}


def test_shutdown_without_changes_does_not_write(tmp_path, store):
    writes = []
    settings = Settings(storage_path=str(tmp_path / "bm.json"))
    sched = PersistenceScheduler(store, settings.storage_path, writer=lambda p, e: writes.append(e))
    app = create_app(store=store, scheduler=sched, settings=settings)

    with TestClient(app) as client:
        client.get("/bookmark/get", params={"item": "abc"})

    assert writes == []
