"""
Config loading, dashboards document file and sample store.
"""

from pathlib import Path

import pytest

from tileboard.config_loader import AppConfig, load_config
from tileboard.data_controller import DataController, downsample
from tileboard.document_store import DocumentStore, InvalidDocument, validate_document
from tileboard.grid.coordinates import CoordinateModel


# ── Config ────────────────────────────────────────────

def test_missing_config_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config == AppConfig()
    assert config.grid.cell == 80
    assert config.server.port == 3000


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "board.yaml"
    path.write_text(
        "grid:\n"
        "  cell: 60\n"
        "  overlay_breakpoints:\n"
        "    - maxWidth: 1920\n"
        "      cols: 22\n"
        "      rows: 10\n"
        "server:\n"
        "  port: 4000\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.grid.cell == 60
    assert config.grid.cols == 40
    assert config.server.port == 4000
    assert CoordinateModel(config.grid).resolve_overlay_dims(1000) == (22, 10)


def test_bundled_config_breakpoints():
    config = load_config(Path(__file__).resolve().parent.parent / "config" / "board.yaml")
    coords = CoordinateModel(config.grid)
    assert coords.resolve_overlay_dims(2000) == (25, 13)


# ── Document store ────────────────────────────────────

def test_document_store_roundtrip(tmp_path):
    store = DocumentStore(tmp_path / "data")
    assert store.read_state()["dashboards"][0]["name"] == "Main"

    state = {"version": 1, "activeId": "d9", "dashboards": [{"id": "d9", "name": "X", "items": []}]}
    store.write_state(state)
    assert store.read_state() == state
    assert [p.name for p in (tmp_path / "data").iterdir()] == ["dashboards.json"]


def test_document_store_create_truncates_name(tmp_path):
    store = DocumentStore(tmp_path)
    new_id = store.create_dashboard("n" * 50)
    state = store.read_state()
    assert state["activeId"] == new_id
    assert state["dashboards"][-1]["name"] == "n" * 40
    assert len(state["dashboards"]) == 2


def test_validate_document():
    assert validate_document({"dashboards": []}) == {"dashboards": []}
    with pytest.raises(InvalidDocument):
        validate_document(None)


# ── Sample store ──────────────────────────────────────

def test_downsample_keeps_last_point():
    points = [[i, i] for i in range(10)]
    picked = downsample(points, 4)
    assert len(picked) == 4
    assert picked[0] == [0, 0]
    assert picked[-1] == [9, 9]
    assert downsample(points, 20) == points


def test_data_controller_latest_and_clear(tmp_path):
    dc = DataController(tmp_path / "samples.json")
    try:
        dc.add_sample("temp", 1, ts_ms=100)
        dc.add_sample("temp", 2, ts_ms=200)
        assert dc.get_latest("temp")["value"] == 2
        assert dc.get_series("temp") == [[100, 1], [200, 2]]

        dc.clear_key("temp")
        assert dc.get_latest("temp") is None
        assert dc.get_series("temp") == []
    finally:
        dc.close()
