import asyncio

import httpx
import pytest

from conftest import make_item

from tileboard.errors import UnknownWidgetType
from tileboard.grid.canvas import ItemContainer
from tileboard.models import Dashboard, RangeSelector
from tileboard.widgets.base import (
    CancelToken,
    WidgetContext,
    extract_value,
    normalize_refresh_ms,
    query_pair,
)
from tileboard.widgets.gauge import FALLBACK_COLOR, GaugeWidget, build_axis_stops
from tileboard.widgets.linechart import LineChartWidget, parse_points, series_name
from tileboard.widgets.registry import default_registry
from tileboard.widgets.value import ValueWidget


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://board.test")


# ── Helpers ───────────────────────────────────────────

def test_query_pair_needs_both_parts():
    assert query_pair("key", "temp") == {"key": "temp"}
    assert query_pair("key", "") == {}
    assert query_pair("", "temp") == {}
    assert query_pair(None, None) == {}


def test_normalize_refresh_ms_bounds():
    assert normalize_refresh_ms(10, 5000) == 1000
    assert normalize_refresh_ms(10_000_000, 5000) == 3600000
    assert normalize_refresh_ms("abc", 5000) == 5000
    assert normalize_refresh_ms("2500", 5000) == 2500


def test_extract_value():
    assert extract_value({"data": {"temp": 21}}, "$.data.temp") == 21
    assert extract_value({"value": 1}, "$.missing") is None


def test_cancel_token_runs_callbacks_once():
    calls = []
    token = CancelToken()
    token.on_cancel(lambda: calls.append("a"))
    token.cancel()
    token.cancel()
    token.on_cancel(lambda: calls.append("late"))
    assert token.cancelled
    assert calls == ["a", "late"]


# ── Registry ──────────────────────────────────────────

def test_default_registry_bundles_three_widgets():
    registry = default_registry()
    assert [m.type for m in registry.list_metas()] == ["value1x1", "gauge3x3", "linechart6x4"]


def test_create_default_item_copies_defaults():
    registry = default_registry()
    base = registry.create_default_item("gauge3x3")
    assert (base["w"], base["h"]) == (3, 3)
    base["config"]["ranges"].append({"from": 0, "to": 1})
    assert registry.get("gauge3x3").meta.defaults["ranges"] == []


def test_create_default_item_unknown_type():
    with pytest.raises(UnknownWidgetType):
        default_registry().create_default_item("nope")


# ── Value widget ──────────────────────────────────────

def test_value_widget_renders_latest_value():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"key": "temp", "value": 21.5})

    async def scenario():
        client = client_for(handler)
        widget = ValueWidget()
        container = ItemContainer("w1", 1)
        item = make_item("w1", 0, 0, w=1, h=1, paramKey="key", paramValue="temp", title="Temp")
        inst = widget.mount(container, WidgetContext(item=item, http_client=client))

        assert container.content["value"] == "—"
        assert container.content["title"] == "Temp"
        assert "widget-value1x1" in container.classes

        await widget.refresh(inst)
        widget.unmount(inst)
        await client.aclose()
        return container, inst

    container, inst = asyncio.run(scenario())

    assert container.content["value"] == "21.5"
    assert requests[0].url.path == "/api/latest"
    assert requests[0].url.params["key"] == "temp"
    assert inst.token.cancelled
    assert inst.task is None


def test_value_widget_shows_error_marker():
    def handler(request):
        return httpx.Response(500, json={"error": "down"})

    async def scenario():
        client = client_for(handler)
        widget = ValueWidget()
        container = ItemContainer("w1", 1)
        inst = widget.mount(container, WidgetContext(item=make_item("w1", 0, 0), http_client=client))
        await widget.refresh(inst)
        widget.unmount(inst)
        await client.aclose()
        return container

    assert asyncio.run(scenario()).content["value"] == "ERR"


def test_late_response_after_unmount_is_ignored():
    async def scenario():
        released = asyncio.Event()

        async def handler(request):
            await released.wait()
            return httpx.Response(200, json={"value": 99})

        client = client_for(handler)
        widget = ValueWidget()
        container = ItemContainer("w1", 1)
        inst = widget.mount(container, WidgetContext(item=make_item("w1", 0, 0), http_client=client))

        pending = asyncio.create_task(widget.refresh(inst))
        await asyncio.sleep(0)
        widget.unmount(inst)
        released.set()
        await pending
        await client.aclose()
        return container

    assert asyncio.run(scenario()).content["value"] == "—"


def test_mount_without_event_loop_does_not_poll():
    widget = ValueWidget()
    inst = widget.mount(ItemContainer("w1", 1), WidgetContext(item=make_item("w1", 0, 0, refreshMs=10)))
    assert inst.task is None
    assert inst.refresh_ms == 1000
    widget.unmount(inst)


# ── Gauge ─────────────────────────────────────────────

def test_axis_stops_are_cumulative_and_end_at_one():
    ranges = [
        {"from": 50, "to": 80, "color": "orange"},
        {"from": 0, "to": 50, "color": "green"},
        {"from": 80, "to": 70, "color": "bad"},
        "junk",
    ]
    assert build_axis_stops(0, 100, ranges) == [(0.5, "green"), (0.8, "orange"), (1.0, FALLBACK_COLOR)]


def test_axis_stops_clamp_to_axis():
    stops = build_axis_stops(0, 100, [{"from": -10, "to": 150, "color": "red"}])
    assert stops == [(1.0, "red")]


def test_axis_stops_without_span():
    assert build_axis_stops(5, 5, [{"from": 0, "to": 10, "color": "red"}]) == [(1.0, FALLBACK_COLOR)]


def test_gauge_clamps_value_to_bounds():
    widget = GaugeWidget()
    container = ItemContainer("w1", 1)
    inst = widget.mount(container, WidgetContext(item=make_item("w1", 0, 0, w=3, h=3, min=0, max=100)))

    widget.render_data(inst, "250")

    assert container.content["value"] == 100
    assert container.content["raw"] == 250
    assert container.content["stops"] == [(1.0, FALLBACK_COLOR)]
    widget.unmount(inst)


# ── Line chart ────────────────────────────────────────

def test_parse_points_skips_malformed_and_sorts():
    payload = {"points": [[3, 1], [1, 2], ["x", 3], [2], [2, "4"]]}
    assert parse_points(payload) == [(1, 2), (2, 4), (3, 1)]
    assert parse_points([[1, 1]]) == [(1, 1)]
    assert parse_points({"nothing": True}) == []


def test_series_name_fallbacks():
    assert series_name({"label": "CPU", "paramValue": "cpu"}) == "CPU"
    assert series_name({"paramValue": "cpu"}) == "cpu"
    assert series_name({}) == "Series"


def test_linechart_uses_dashboard_range():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"points": [[2000, 5], [1000, 4]]})

    dashboard = Dashboard(
        id="d1",
        name="Main",
        range=RangeSelector(mode="custom", from_ts_ms=1000, to_ts_ms=5000),
    )
    sources = [
        {"endpoint": "/api/series", "paramKey": "key", "paramValue": "cpu", "label": "CPU"},
        {"endpoint": "/api/series", "paramKey": "key", "paramValue": ""},
    ]

    async def scenario():
        client = client_for(handler)
        widget = LineChartWidget()
        container = ItemContainer("w1", 1)
        item = make_item("w1", 0, 0, w=6, h=4, sources=sources, maxPoints=50)
        ctx = WidgetContext(item=item, get_dashboard=lambda: dashboard, http_client=client)
        inst = widget.mount(container, ctx)
        await widget.refresh(inst)
        widget.unmount(inst)
        await client.aclose()
        return container

    container = asyncio.run(scenario())

    first = next(p for p in seen if p.get("key") == "cpu")
    assert first["from_ts_ms"] == "1000"
    assert first["to_ts_ms"] == "5000"
    assert first["max_points"] == "50"
    assert any("key" not in p for p in seen)
    series = container.content["series"]
    assert [s["name"] for s in series] == ["CPU", "Series"]
    assert series[0]["points"] == [(1000, 4), (2000, 5)]


def test_linechart_limits_sources():
    widget = LineChartWidget()
    cfg = {"sources": [{"endpoint": f"/s{i}"} for i in range(5)]}
    assert len(widget.sources(cfg)) == 3
