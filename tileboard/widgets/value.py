"""
Value widget (1x1): shows the latest value of a single key.
"""

from typing import Any

from tileboard.widgets.base import (
    FieldKind,
    PollingWidget,
    WidgetField,
    WidgetInstance,
    WidgetMeta,
    WidgetSize,
    extract_value,
    query_pair,
)

EMPTY = "—"


class ValueWidget(PollingWidget):
    meta = WidgetMeta(
        type="value1x1",
        label="Value (1x1)",
        size=WidgetSize(w=1, h=1),
        defaults={
            "title": "value",
            "endpoint": "/api/latest",
            "paramKey": "key",
            "paramValue": "value",
            "valuePath": "$.value",
            "refreshMs": 5000,
        },
        fields=[
            WidgetField(key="title", label="Title", max=20),
            WidgetField(key="endpoint", label="Endpoint", required=True, placeholder="/api/latest",
                        help="Example:", help_code="/api/latest?key=value"),
            WidgetField(key="paramKey", label="Query key", placeholder="key"),
            WidgetField(key="paramValue", label="Query value", placeholder="value"),
            WidgetField(key="valuePath", label="Value path", placeholder="$.value"),
            WidgetField(key="refreshMs", label="Refresh (ms)", kind=FieldKind.NUMBER, required=True),
        ],
    )

    def request(self, cfg: dict) -> tuple[str, dict]:
        defaults = self.meta.defaults
        endpoint = str(cfg.get("endpoint") or defaults["endpoint"]).strip()
        params = query_pair(cfg.get("paramKey") or defaults["paramKey"], cfg.get("paramValue") or defaults["paramValue"])
        return endpoint, params

    async def fetch(self, inst: WidgetInstance) -> Any:
        endpoint, params = self.request(inst.cfg)
        payload = await self.get_json(inst, endpoint, params)
        return extract_value(payload, inst.cfg.get("valuePath") or self.meta.defaults["valuePath"])

    def render_static(self, inst: WidgetInstance):
        super().render_static(inst)
        inst.container.content.setdefault("value", EMPTY)

    def render_data(self, inst: WidgetInstance, data: Any):
        inst.container.content["value"] = EMPTY if data is None else str(data)

    def render_error(self, inst: WidgetInstance, error: Exception):
        inst.container.content["value"] = "ERR"
