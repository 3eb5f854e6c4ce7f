"""
Tree service tests: app.py + tree_routes.py (Flask test client, in-memory and file TinyDB)
"""
import threading

import pytest

from zkmerkle.merkle_tree import FrontierAccumulator

import tree_routes
from app import create_app

from conftest import (
    COMPRESS_1_2,
    H2_ROOT_LEAVES_1_TO_4,
    H32_ROOT_LEAF_1, H32_ROOT_LEAVES_1_2,
)


# ─────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def app():
    app = create_app({"TESTING": True, "TREE_DB_IN_MEMORY": True})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def small_tree(monkeypatch):
    """새 누적자를 높이 2로 만든다 (용량 테스트용)."""
    monkeypatch.setattr(tree_routes, "FrontierAccumulator",
                        lambda: FrontierAccumulator(height=2))


# ─────────────────────────────────────────────────────────────────────
# App / config
# ─────────────────────────────────────────────────────────────────────

class TestApp:
    def test_config_defaults(self, app):
        assert app.config["TREE_DB_IN_MEMORY"] is True
        assert app.config["TREE_DB_PATH"] == "db.json"
        assert app.config["LOG_LEVEL"] == "INFO"

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("ZKMERKLE_LOG_LEVEL", "DEBUG")
        app = create_app({"TREE_DB_IN_MEMORY": True})
        assert app.config["LOG_LEVEL"] == "DEBUG"

    def test_file_storage(self, tmp_path):
        path = tmp_path / "tree.json"
        app = create_app({"TREE_DB_PATH": str(path)})
        app.test_client().post("/tree/leaf", json={"value": 1})
        assert path.exists()

    def test_index_redirects_to_state(self, client):
        resp = client.get("/")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/tree/state")


# ─────────────────────────────────────────────────────────────────────
# State / insertion
# ─────────────────────────────────────────────────────────────────────

class TestState:
    def test_empty_state(self, client):
        data = client.get("/tree/state").get_json()
        assert data["height"] == 32
        assert data["width"] == 1 << 32
        assert data["leaf_count"] == 0
        assert data["root"] is None
        assert len(data["frontier"]) == 33


class TestInsert:
    def test_insert_leaf(self, client):
        resp = client.post("/tree/leaf", json={"value": 1})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data == {"ok": True, "leaf_index": 0, "root": str(H32_ROOT_LEAF_1)}

    def test_state_persisted_between_requests(self, client):
        client.post("/tree/leaf", json={"value": "1"})
        data = client.post("/tree/leaf", json={"value": "0x2"}).get_json()
        assert data["leaf_index"] == 1
        assert data["root"] == str(H32_ROOT_LEAVES_1_2)
        state = client.get("/tree/state").get_json()
        assert state["leaf_count"] == 2
        assert state["root"] == str(H32_ROOT_LEAVES_1_2)

    def test_insert_leaves(self, client):
        data = client.post("/tree/leaves", json={"values": [1, 2]}).get_json()
        assert data == {
            "ok": True,
            "min_leaf_index": 0,
            "accepted": 2,
            "root": str(H32_ROOT_LEAVES_1_2),
        }

    def test_missing_value(self, client):
        resp = client.post("/tree/leaf", json={})
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_PARAMETER"

    def test_non_json_body(self, client):
        resp = client.post("/tree/leaf", data="1")
        assert resp.status_code == 400

    def test_bad_value(self, client):
        resp = client.post("/tree/leaf", json={"value": "not-a-number"})
        assert resp.status_code == 400
        assert client.get("/tree/state").get_json()["leaf_count"] == 0

    def test_values_must_be_list(self, client):
        resp = client.post("/tree/leaves", json={"values": "1,2"})
        assert resp.status_code == 400

    def test_empty_batch(self, client):
        resp = client.post("/tree/leaves", json={"values": []})
        assert resp.status_code == 400


class TestCapacity:
    def test_truncation(self, client, small_tree):
        client.post("/tree/leaf", json={"value": 1})
        data = client.post("/tree/leaves", json={"values": [2, 3, 4, 5, 6]}).get_json()
        assert data["min_leaf_index"] == 1
        assert data["accepted"] == 3
        assert data["root"] == str(H2_ROOT_LEAVES_1_TO_4)

        events = client.get("/tree/events").get_json()
        assert events[-1]["leaf_values"] == ["2", "3", "4"]

    def test_full_tree_conflict(self, client, small_tree):
        client.post("/tree/leaves", json={"values": [1, 2, 3, 4]})
        before = client.get("/tree/state").get_json()

        resp = client.post("/tree/leaf", json={"value": 5})
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["ok"] is False
        assert body["error"]["code"] == "CAPACITY_EXCEEDED"

        resp = client.post("/tree/leaves", json={"values": [5]})
        assert resp.status_code == 409
        assert client.get("/tree/state").get_json() == before
        assert len(client.get("/tree/events").get_json()) == 1


# ─────────────────────────────────────────────────────────────────────
# Events / hash / clear
# ─────────────────────────────────────────────────────────────────────

class TestEvents:
    def test_events_in_order(self, client, small_tree):
        client.post("/tree/leaf", json={"value": 1})
        client.post("/tree/leaves", json={"values": [2, 3]})
        events = client.get("/tree/events").get_json()
        assert [e["event"] for e in events] == ["NewLeaf", "NewLeaves"]
        assert events[0]["leaf_index"] == 0
        assert events[0]["leaf_value"] == "1"
        assert events[1]["min_leaf_index"] == 1
        assert [e["seq"] for e in events] == [1, 2]

    def test_events_since(self, client, small_tree):
        client.post("/tree/leaf", json={"value": 1})
        client.post("/tree/leaf", json={"value": 2})
        events = client.get("/tree/events?since=1").get_json()
        assert len(events) == 1
        assert events[0]["leaf_index"] == 1


class TestHash:
    def test_hash(self, client):
        data = client.get("/tree/hash?left=1&right=2").get_json()
        assert data["hash"] == str(COMPRESS_1_2)

    def test_hash_missing_argument(self, client):
        assert client.get("/tree/hash?left=1").status_code == 400


class TestClear:
    def test_clear(self, client, small_tree):
        client.post("/tree/leaves", json={"values": [1, 2, 3, 4]})
        assert client.post("/tree/clear").get_json() == {"ok": True}
        state = client.get("/tree/state").get_json()
        assert state["leaf_count"] == 0
        assert client.get("/tree/events").get_json() == []
        assert client.post("/tree/leaf", json={"value": 1}).status_code == 200


# ─────────────────────────────────────────────────────────────────────
# Concurrency / write ordering
# ─────────────────────────────────────────────────────────────────────

class TestConcurrency:
    def test_reads_during_writes_on_file_db(self, tmp_path):
        app = create_app({"TESTING": True, "TREE_DB_PATH": str(tmp_path / "tree.json")})
        writes_per_thread = 10
        errors = []
        statuses = []

        def writer(base):
            client = app.test_client()
            for i in range(writes_per_thread):
                try:
                    resp = client.post("/tree/leaf", json={"value": base + i})
                    statuses.append(resp.status_code)
                except Exception as exc:
                    errors.append(exc)

        def reader():
            client = app.test_client()
            for _ in range(writes_per_thread * 2):
                try:
                    statuses.append(client.get("/tree/state").status_code)
                    statuses.append(client.get("/tree/events").status_code)
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=writer, args=(100 * n,)) for n in range(3)]
        threads += [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert set(statuses) == {200}
        client = app.test_client()
        assert client.get("/tree/state").get_json()["leaf_count"] == 3 * writes_per_thread
        events = client.get("/tree/events").get_json()
        assert sorted(e["leaf_index"] for e in events) == list(range(3 * writes_per_thread))


class TestWriteOrdering:
    def test_no_event_when_state_write_fails(self, client, monkeypatch):
        def failing_set(key, data):
            raise RuntimeError("disk full")

        monkeypatch.setattr(tree_routes, "db_set", failing_set)
        with pytest.raises(RuntimeError):
            client.post("/tree/leaf", json={"value": 1})
        monkeypatch.undo()

        assert client.get("/tree/events").get_json() == []
        assert client.get("/tree/state").get_json()["leaf_count"] == 0

    def test_event_matches_stored_state(self, client):
        client.post("/tree/leaves", json={"values": [1, 2]})
        state = client.get("/tree/state").get_json()
        events = client.get("/tree/events").get_json()
        assert events[-1]["root"] == state["root"]


class TestBatchTruncation:
    def test_malformed_value_past_capacity_dropped(self, client, small_tree):
        resp = client.post("/tree/leaves", json={"values": [1, 2, 3, 4, "junk"]})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["accepted"] == 4
        assert data["root"] == str(H2_ROOT_LEAVES_1_TO_4)

    def test_malformed_value_within_capacity_rejected(self, client, small_tree):
        resp = client.post("/tree/leaves", json={"values": [1, "junk", 3]})
        assert resp.status_code == 400
        assert client.get("/tree/state").get_json()["leaf_count"] == 0
        assert client.get("/tree/events").get_json() == []
