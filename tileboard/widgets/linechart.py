"""
Line chart widget (6x4): up to three time series over the dashboard range.

Without a dashboard range the widget falls back to its own ``rangeMs``
ending now.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from tileboard.time_range import DAY_MS, HOUR_MS, now_ms
from tileboard.widgets.base import (
    FieldKind,
    FieldOption,
    PollingWidget,
    WidgetField,
    WidgetInstance,
    WidgetMeta,
    WidgetSize,
    normalize_number,
    query_pair,
)

MAX_SOURCES = 3
DEFAULT_COLOR = "#0d6efd"


def _bounded_int(v: Any, fallback: int, lo: int, hi: int) -> int:
    n = normalize_number(v, None)
    if n is None:
        return fallback
    return int(max(lo, min(hi, round(n))))


def optional_number(v: Any) -> Optional[float]:
    if v is None or str(v).strip() == "":
        return None
    return normalize_number(v, None)


def parse_points(payload: Any) -> List[Tuple[float, float]]:
    """
    Accepts ``{"points": [[ts, v], ...]}``, ``{"data": [...]}`` or a bare list.
    Malformed points are skipped; the result is sorted by timestamp.
    """
    raw: list = []
    if isinstance(payload, dict):
        if isinstance(payload.get("points"), list):
            raw = payload["points"]
        elif isinstance(payload.get("data"), list):
            raw = payload["data"]
    elif isinstance(payload, list):
        raw = payload

    out = []
    for p in raw:
        if not isinstance(p, (list, tuple)) or len(p) < 2:
            continue
        ts = normalize_number(p[0], None)
        val = normalize_number(p[1], None)
        if ts is None or val is None:
            continue
        out.append((ts, val))
    out.sort(key=lambda p: p[0])
    return out


def series_name(src: Dict[str, Any]) -> str:
    return str(src.get("label") or "").strip() or str(src.get("paramValue") or "").strip() or "Series"


class LineChartWidget(PollingWidget):
    meta = WidgetMeta(
        type="linechart6x4",
        label="Line Chart (6x4)",
        size=WidgetSize(w=6, h=4),
        defaults={
            "title": "LineChart",
            "refreshMs": 60000,
            "rangeMs": 6 * HOUR_MS,
            "maxPoints": 400,
            "yMin": "",
            "yMax": "",
            "sources": [],
        },
        fields=[
            WidgetField(key="title", label="Title", max=20),
            WidgetField(
                key="refreshMs", label="Refresh Interval", kind=FieldKind.SELECT, required=True,
                options=[FieldOption(value=v, label=lbl) for v, lbl in [
                    (60000, "1m"), (300000, "5m"), (600000, "10m"), (1800000, "30m"), (3600000, "1h"),
                ]],
            ),
            WidgetField(
                key="rangeMs", label="Fallback range", kind=FieldKind.SELECT, required=True,
                options=[FieldOption(value=v, label=lbl) for v, lbl in [
                    (6 * HOUR_MS, "6h"), (12 * HOUR_MS, "12h"), (24 * HOUR_MS, "24h"),
                    (7 * DAY_MS, "7d"), (30 * DAY_MS, "30d"),
                ]],
                help="Used when no time range is set.",
            ),
            WidgetField(key="maxPoints", label="Max points", kind=FieldKind.NUMBER, required=True,
                        help="Maximum data points to display."),
            WidgetField(key="sources", label="Time Series", kind=FieldKind.MULTI_SERIES_SOURCE, required=True,
                        max_rows=MAX_SOURCES, help="Up to 3 series. Each series defines endpoint + label + color."),
            WidgetField(key="yMin", label="Y min", kind=FieldKind.NUMBER, placeholder="auto", help="Leave empty for auto."),
            WidgetField(key="yMax", label="Y max", kind=FieldKind.NUMBER, placeholder="auto", help="Leave empty for auto."),
        ],
    )

    def sources(self, cfg: dict) -> List[Dict[str, Any]]:
        raw = cfg.get("sources")
        if not isinstance(raw, list):
            return []
        return [s for s in raw if isinstance(s, dict)][:MAX_SOURCES]

    def window(self, inst: WidgetInstance) -> Tuple[int, int]:
        params = inst.ctx.get_query_params()
        if params:
            return params["from_ts_ms"], params["to_ts_ms"]
        range_ms = _bounded_int(inst.cfg.get("rangeMs"), self.meta.defaults["rangeMs"], 60_000, 30 * DAY_MS)
        now = now_ms()
        return now - range_ms, now

    def source_params(self, inst: WidgetInstance, src: Dict[str, Any]) -> Dict[str, Any]:
        from_ts, to_ts = self.window(inst)
        params: Dict[str, Any] = {
            "from_ts_ms": from_ts,
            "to_ts_ms": to_ts,
            "max_points": _bounded_int(inst.cfg.get("maxPoints"), self.meta.defaults["maxPoints"], 10, 20000),
        }
        params.update(query_pair(src.get("paramKey"), src.get("paramValue")))
        return params

    async def fetch(self, inst: WidgetInstance) -> Any:
        sources = self.sources(inst.cfg)
        if not sources:
            return None

        async def one(src: Dict[str, Any]) -> Dict[str, Any]:
            endpoint = str(src.get("endpoint") or "").strip()
            payload = await self.get_json(inst, endpoint, self.source_params(inst, src))
            return {
                "name": series_name(src),
                "color": str(src.get("color") or "").strip() or DEFAULT_COLOR,
                "points": parse_points(payload),
            }

        return await asyncio.gather(*(one(src) for src in sources))

    def render_static(self, inst: WidgetInstance):
        super().render_static(inst)
        content = inst.container.content
        content["y_min"] = optional_number(inst.cfg.get("yMin"))
        content["y_max"] = optional_number(inst.cfg.get("yMax"))
        if "series" not in content:
            content["series"] = [
                {"name": series_name(s), "color": str(s.get("color") or "").strip() or DEFAULT_COLOR, "points": []}
                for s in self.sources(inst.cfg)
            ]

    def render_data(self, inst: WidgetInstance, data: Any):
        if data is None:
            return
        inst.container.content["series"] = list(data)

    def render_error(self, inst: WidgetInstance, error: Exception):
        inst.container.content["error"] = "ERR"
