"""
Widget module contract and the shared polling implementation.

A widget module implements ``mount`` / ``update`` / ``unmount`` and carries a
``meta`` descriptor. Instances that fetch data own a ``CancelToken`` created at
mount and cancelled synchronously at unmount; every continuation checks it
before touching the instance.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
from jsonpath_ng import parse as jsonpath_parse
from pydantic import BaseModel, Field

from tileboard.grid.canvas import ItemContainer
from tileboard.models import Dashboard, Item
from tileboard.time_range import range_query_params

logger = logging.getLogger(__name__)

MIN_REFRESH_MS = 1000
MAX_REFRESH_MS = 3600000


# ── Meta descriptor ───────────────────────────────────

class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    RANGES = "ranges"
    COLOR_RANGES = "colorranges"
    MULTI_SERIES_SOURCE = "multiSeriesSource"


class FieldOption(BaseModel):
    value: Any
    label: str


class WidgetField(BaseModel):
    """One editable field of the add-widget form."""
    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    max: Optional[int] = None
    placeholder: str = ""
    help: Optional[str] = None
    help_code: Optional[str] = None
    options: List[FieldOption] = Field(default_factory=list)
    max_rows: Optional[int] = None


class WidgetSize(BaseModel):
    w: int
    h: int


class WidgetMeta(BaseModel):
    type: str
    label: str
    size: WidgetSize
    defaults: Dict[str, Any] = Field(default_factory=dict)
    fields: List[WidgetField] = Field(default_factory=list)


# ── Context & cancellation ────────────────────────────

class WidgetContext:
    """What a widget may see: its item plus dashboard-wide services."""

    def __init__(
        self,
        item: Optional[Item] = None,
        get_dashboard: Optional[Callable[[], Optional[Dashboard]]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.item = item
        self.get_dashboard = get_dashboard or (lambda: None)
        self.http_client = http_client

    def for_item(self, item: Item) -> "WidgetContext":
        return WidgetContext(item=item, get_dashboard=self.get_dashboard, http_client=self.http_client)

    def get_query_params(self) -> Dict[str, int]:
        """Dashboard-wide time range as ``from_ts_ms`` / ``to_ts_ms``, or empty."""
        return range_query_params(self.get_dashboard())


class CancelToken:
    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, callback: Callable[[], None]):
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()


class WidgetModule(ABC):
    meta: WidgetMeta

    @property
    def type(self) -> str:
        return self.meta.type

    @abstractmethod
    def mount(self, container: ItemContainer, ctx: WidgetContext) -> Any:
        ...

    def update(self, instance: Any, ctx: WidgetContext) -> None:
        return None

    def unmount(self, instance: Any) -> None:
        return None


# ── Helpers shared by the bundled widgets ─────────────

def normalize_number(v: Any, fallback: Optional[float]) -> Optional[float]:
    try:
        n = float(v)
    except (TypeError, ValueError):
        return fallback
    if n != n or n in (float("inf"), float("-inf")):
        return fallback
    return n


def normalize_refresh_ms(v: Any, fallback: int) -> int:
    n = normalize_number(v, None)
    if n is None:
        return fallback
    return int(max(MIN_REFRESH_MS, min(MAX_REFRESH_MS, round(n))))


def query_pair(key: Any, value: Any) -> Dict[str, str]:
    """Optional key/value query pair: used only when both parts are filled in."""
    k = str(key or "").strip()
    v = str(value or "").strip()
    if k and v:
        return {k: v}
    return {}


def extract_value(payload: Any, expr: str) -> Any:
    matches = jsonpath_parse(expr).find(payload)
    if not matches:
        return None
    return matches[0].value


class WidgetInstance:
    def __init__(self, container: ItemContainer, ctx: WidgetContext):
        self.container = container
        self.ctx = ctx
        self.cfg: Dict[str, Any] = dict(ctx.item.config) if ctx.item else {}
        self.token = CancelToken()
        self.task: Optional[asyncio.Task] = None
        self.refresh_ms = 0


class PollingWidget(WidgetModule):
    """
    Base for widgets that periodically fetch JSON and render it.

    Subclasses implement ``fetch`` plus the ``render_*`` hooks.
    """

    default_refresh_ms = 5000

    def mount(self, container: ItemContainer, ctx: WidgetContext) -> WidgetInstance:
        container.classes.add(f"widget-{self.type}")
        inst = WidgetInstance(container, ctx)
        inst.token.on_cancel(lambda: self._stop(inst))
        self.render_static(inst)
        self._start(inst)
        return inst

    def update(self, instance: WidgetInstance, ctx: WidgetContext) -> None:
        if instance.token.cancelled:
            return
        instance.ctx = ctx
        instance.cfg = dict(ctx.item.config) if ctx.item else {}
        self.render_static(instance)
        self._start(instance)

    def unmount(self, instance: WidgetInstance) -> None:
        instance.token.cancel()

    # ── Refresh loop ──────────────────────────────────

    async def refresh(self, inst: WidgetInstance):
        if inst.token.cancelled:
            return
        try:
            data = await self.fetch(inst)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if inst.token.cancelled:
                return
            logger.warning(f"[{inst.container.item_id}] {self.type} refresh failed: {e}")
            self.render_error(inst, e)
            return

        if inst.token.cancelled:
            return
        self.render_data(inst, data)

    async def _poll(self, inst: WidgetInstance):
        while not inst.token.cancelled:
            await self.refresh(inst)
            await asyncio.sleep(inst.refresh_ms / 1000)

    def _start(self, inst: WidgetInstance):
        self._stop(inst)
        inst.refresh_ms = normalize_refresh_ms(inst.cfg.get("refreshMs"), self.meta.defaults.get("refreshMs", self.default_refresh_ms))
        inst.cfg["refreshMs"] = inst.refresh_ms
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"[{inst.container.item_id}] no running event loop, polling not started")
            return
        inst.task = loop.create_task(self._poll(inst))

    @staticmethod
    def _stop(inst: WidgetInstance):
        if inst.task is not None and not inst.task.done():
            inst.task.cancel()
        inst.task = None

    async def get_json(self, inst: WidgetInstance, endpoint: str, params: Dict[str, Any]) -> Any:
        client = inst.ctx.http_client
        if client is None:
            raise RuntimeError("No HTTP client available")
        response = await client.get(endpoint, params=params)
        response.raise_for_status()
        return response.json()

    def title(self, inst: WidgetInstance) -> str:
        return str(inst.cfg.get("title") or "").strip() or self.meta.defaults.get("title", "")

    # ── Hooks ─────────────────────────────────────────

    @abstractmethod
    async def fetch(self, inst: WidgetInstance) -> Any:
        ...

    def render_static(self, inst: WidgetInstance):
        inst.container.content["title"] = self.title(inst)

    def render_data(self, inst: WidgetInstance, data: Any):
        inst.container.content["data"] = data

    def render_error(self, inst: WidgetInstance, error: Exception):
        inst.container.content["error"] = str(error)
