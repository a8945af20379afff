"""
Gauge widget (3x3): latest value on a min/max axis with coloured segments.
"""

from typing import Any, List, Tuple

from tileboard.widgets.base import (
    FieldKind,
    FieldOption,
    PollingWidget,
    WidgetField,
    WidgetInstance,
    WidgetMeta,
    WidgetSize,
    extract_value,
    normalize_number,
    query_pair,
)

FALLBACK_COLOR = "#e6e6e6"

_REFRESH_OPTIONS = [
    (1000, "1s"), (2000, "2s"), (5000, "5s"), (10000, "10s"),
    (30000, "30s"), (60000, "1m"), (300000, "5m"), (3600000, "1h"),
]


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def build_axis_stops(min_v: float, max_v: float, ranges: Any, fallback_color: str = FALLBACK_COLOR) -> List[Tuple[float, str]]:
    """
    Convert absolute ``{from, to, color}`` ranges into cumulative axis stops in 0..1.

    Invalid rows are dropped, stops are monotonic and the last stop is always 1.
    """
    span = max_v - min_v
    if not span > 0:
        return [(1.0, fallback_color)]

    cleaned = []
    for r in ranges if isinstance(ranges, list) else []:
        if not isinstance(r, dict):
            continue
        lo = normalize_number(r.get("from"), None)
        hi = normalize_number(r.get("to"), None)
        color = str(r.get("color") or "").strip() or fallback_color
        if lo is None or hi is None or not hi > lo:
            continue
        cleaned.append((lo, hi, color))

    cleaned.sort(key=lambda r: r[0])

    stops: List[List[Any]] = []
    for _, hi, color in cleaned:
        to = _clamp(hi, min_v, max_v)
        stops.append([_clamp((to - min_v) / span, 0.0, 1.0), color])

    if not stops or stops[-1][0] < 1:
        stops.append([1.0, fallback_color])

    prev = 0.0
    for s in stops:
        s[0] = max(prev, s[0])
        prev = s[0]

    return [(s[0], s[1]) for s in stops]


class GaugeWidget(PollingWidget):
    meta = WidgetMeta(
        type="gauge3x3",
        label="Gauge (3x3)",
        size=WidgetSize(w=3, h=3),
        defaults={
            "title": "Gauge",
            "refreshMs": 5000,
            "endpoint": "/api/latest",
            "paramKey": "key",
            "paramValue": "value",
            "valuePath": "$.value",
            "min": 0,
            "max": 2000,
            "ranges": [],
        },
        fields=[
            WidgetField(key="title", label="Title", max=20),
            WidgetField(
                key="refreshMs", label="Refresh Interval", kind=FieldKind.SELECT, required=True,
                options=[FieldOption(value=v, label=lbl) for v, lbl in _REFRESH_OPTIONS],
            ),
            WidgetField(key="endpoint", label="Endpoint", required=True, placeholder="/api/latest",
                        help="Example:", help_code="/api/latest?key=value"),
            WidgetField(key="paramKey", label="Query key", placeholder="key"),
            WidgetField(key="paramValue", label="Query value", placeholder="value"),
            WidgetField(key="min", label="Min", kind=FieldKind.NUMBER, required=True),
            WidgetField(key="max", label="Max", kind=FieldKind.NUMBER, required=True),
            WidgetField(key="ranges", label="Color ranges", kind=FieldKind.COLOR_RANGES,
                        help="Define colored segments on the gauge axis."),
        ],
    )

    def bounds(self, cfg: dict) -> Tuple[float, float]:
        d = self.meta.defaults
        return normalize_number(cfg.get("min"), d["min"]), normalize_number(cfg.get("max"), d["max"])

    async def fetch(self, inst: WidgetInstance) -> Any:
        endpoint = str(inst.cfg.get("endpoint") or self.meta.defaults["endpoint"]).strip()
        params = query_pair(inst.cfg.get("paramKey"), inst.cfg.get("paramValue"))
        payload = await self.get_json(inst, endpoint, params)
        return extract_value(payload, inst.cfg.get("valuePath") or self.meta.defaults["valuePath"])

    def render_static(self, inst: WidgetInstance):
        super().render_static(inst)
        lo, hi = self.bounds(inst.cfg)
        inst.container.content["min"] = lo
        inst.container.content["max"] = hi
        inst.container.content["stops"] = build_axis_stops(lo, hi, inst.cfg.get("ranges"))

    def render_data(self, inst: WidgetInstance, data: Any):
        value = normalize_number(data, None)
        if value is None:
            inst.container.content["value"] = None
            return
        lo, hi = self.bounds(inst.cfg)
        inst.container.content["value"] = _clamp(value, lo, hi)
        inst.container.content["raw"] = value

    def render_error(self, inst: WidgetInstance, error: Exception):
        inst.container.content["value"] = None
        inst.container.content["error"] = "ERR"
