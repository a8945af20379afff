import json

import pytest
from fastapi.testclient import TestClient

from main import create_app
from tileboard.config_loader import AppConfig, ServerConfig


@pytest.fixture
def client(tmp_path):
    app = create_app(AppConfig(server=ServerConfig(data_dir=str(tmp_path))))
    with TestClient(app) as c:
        yield c


def test_initial_document_is_created(client, tmp_path):
    res = client.get("/api/dashboards-document")
    assert res.status_code == 200
    body = res.json()
    assert body["activeId"] == "d1"
    assert body["dashboards"] == [{"id": "d1", "name": "Main", "items": []}]
    assert (tmp_path / "dashboards.json").exists()


def test_put_replaces_whole_document(client, tmp_path):
    doc = {
        "version": 1,
        "activeId": "d2",
        "dashboards": [
            {"id": "d2", "name": "Ops", "items": [{"id": "w1", "x": 0, "y": 0, "w": 1, "h": 1, "type": "value1x1"}]},
        ],
    }
    res = client.put("/api/dashboards-document", json=doc)
    assert res.status_code == 200
    assert res.json() == {"ok": True}

    assert client.get("/api/dashboards-document").json() == doc
    assert json.loads((tmp_path / "dashboards.json").read_text(encoding="utf-8")) == doc
    assert not (tmp_path / "dashboards.json.tmp").exists()


@pytest.mark.parametrize("payload", [[1, 2], {"dashboards": "nope"}, {"activeId": "d1"}])
def test_put_rejects_invalid_payload(client, payload):
    res = client.put("/api/dashboards-document", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"] == "invalid_payload"
    assert client.get("/api/dashboards-document").json()["activeId"] == "d1"


def test_post_creates_active_dashboard(client):
    res = client.post("/api/dashboards-document", json={"name": "Ops"})
    assert res.status_code == 200
    new_id = res.json()["id"]
    assert new_id.startswith("d")

    body = client.get("/api/dashboards-document").json()
    assert body["activeId"] == new_id
    assert body["dashboards"][-1] == {"id": new_id, "name": "Ops", "items": []}


def test_post_without_body_uses_default_name(client):
    new_id = client.post("/api/dashboards-document").json()["id"]
    body = client.get("/api/dashboards-document").json()
    assert body["dashboards"][-1]["id"] == new_id
    assert body["dashboards"][-1]["name"] == "New"


def test_latest_sample(client):
    assert client.get("/api/latest", params={"key": "temp"}).json() == {"key": "temp", "value": None}

    client.post("/api/samples", json={"key": "temp", "value": 20, "ts_ms": 1000})
    client.post("/api/samples", json={"key": "temp", "value": 21, "ts_ms": 2000})

    latest = client.get("/api/latest", params={"key": "temp"}).json()
    assert (latest["value"], latest["ts_ms"]) == (21, 2000)


def test_series_filters_by_window(client):
    for ts, value in [(3000, 3), (1000, 1), (2000, 2), (4000, 4)]:
        client.post("/api/samples", json={"key": "cpu", "value": value, "ts_ms": ts})
    client.post("/api/samples", json={"key": "mem", "value": 9, "ts_ms": 2500})

    res = client.get("/api/series", params={"key": "cpu", "from_ts_ms": 2000, "to_ts_ms": 3000})
    assert res.json() == {"key": "cpu", "points": [[2000, 2], [3000, 3]]}
