"""
Board controller: wires the dashboard store, the persistence gateway, the grid
engine and the widget host together.

Every user action follows the same protocol: build the next document from the
committed one, persist it through the gateway, and only then commit it locally
and re-render. A failed write leaves the committed state and the view as they
were. All writes share the grid's save gate, so a drag commit and a board
action never interleave.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from tileboard.config_loader import GridConfig
from tileboard.errors import (
    BoardError,
    DashboardNotFound,
    DuplicateDashboardName,
    PersistenceFailure,
    SaveInProgress,
)
from tileboard.gateway import PersistenceGateway
from tileboard.grid.collision import find_free_slot
from tileboard.grid.engine import GridEngine
from tileboard.models import DashboardsDocument, Item, Rect, RangeSelector
from tileboard.state import (
    DashboardStore,
    get_active_dashboard,
    name_in_use,
    next_widget_id,
    with_active,
    with_deleted,
    with_items,
    with_range,
    with_renamed,
)
from tileboard.time_range import custom_range, preset_range
from tileboard.widgets.base import WidgetContext
from tileboard.widgets.host import WidgetHost
from tileboard.widgets.registry import WidgetRegistry, default_registry

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 40

BUSY_MESSAGE = "Another change is still being saved."

Notify = Callable[[str], None]


class BoardController:
    def __init__(
        self,
        gateway: PersistenceGateway,
        registry: Optional[WidgetRegistry] = None,
        grid_config: Optional[GridConfig] = None,
        viewport_width: float = 1920,
        http_client: Optional[httpx.AsyncClient] = None,
        on_error: Optional[Notify] = None,
        on_info: Optional[Notify] = None,
    ):
        self.gateway = gateway
        self.registry = registry or default_registry()
        self.store = DashboardStore()
        self.on_error = on_error or (lambda msg: logger.error(msg))
        self.on_info = on_info or (lambda msg: logger.info(msg))

        self.widget_host = WidgetHost(self.registry)
        self.widget_ctx = WidgetContext(
            get_dashboard=self.store.active_dashboard,
            http_client=http_client or gateway.client,
        )
        self.grid = GridEngine(
            grid_config or GridConfig(),
            on_change=self.persist_items,
            on_render=self.sync_widgets,
            viewport_width=viewport_width,
        )

    # ── Boot & rendering ──────────────────────────────

    async def boot(self):
        self.store.commit(await self.gateway.fetch_state())
        self.render_active_dashboard()
        self.grid.set_edit_mode(False)
        logger.info(f"Board loaded, active dashboard: {self.store.document.active_id}")

    @property
    def document(self) -> Optional[DashboardsDocument]:
        return self.store.document

    def render_active_dashboard(self):
        d = self.store.active_dashboard()
        if d is None:
            return
        # set_items re-renders, which triggers sync_widgets
        self.grid.set_items(d.items)

    def sync_widgets(self):
        d = self.store.active_dashboard()
        if d is None:
            return
        self.widget_host.sync(d.items, self.grid.renderer, self.widget_ctx)

    def toggle_edit(self) -> bool:
        enabled = not self.grid.is_editing
        self.grid.set_edit_mode(enabled)
        return enabled

    def resize(self, viewport_width: float):
        self.grid.resize(viewport_width)

    def dispose(self):
        self.widget_host.dispose()

    # ── Persist-then-commit ───────────────────────────

    async def _commit(self, next_document: DashboardsDocument):
        await self.gateway.commit_state(next_document)
        self.store.commit(next_document)

    async def _commit_next(
        self, build: Callable[[DashboardsDocument], DashboardsDocument]
    ) -> Tuple[DashboardsDocument, DashboardsDocument]:
        """
        Take the grid's save gate, then build the next document from the
        committed one and persist it. Raises ``SaveInProgress`` while another
        commit (a drag, an added widget, another action) is outstanding.
        """
        with self.grid.hold_saving():
            current = self.store.document
            nxt = build(current)
            await self._commit(nxt)
        return current, nxt

    async def persist_items(self, items: list[Item]):
        """Grid ``on_change``: persist the active dashboard's next item list."""
        # GridEngine.persist already holds the save gate here
        doc = self.store.document
        active = get_active_dashboard(doc)
        if active is None:
            raise DashboardNotFound(doc.active_id if doc else "")

        try:
            await self._commit(with_items(doc, items, active.id))
        except PersistenceFailure:
            self.on_error("Failed to save dashboard layout. (Check connection?)")
            raise

    # ── Dashboards ────────────────────────────────────

    async def select_dashboard(self, dashboard_id: str) -> bool:
        try:
            await self._commit_next(lambda doc: with_active(doc, dashboard_id))
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            return False
        except PersistenceFailure as e:
            self.on_error("Failed to switch dashboard.")
            logger.warning(f"[{dashboard_id}] switch failed: {e}")
            return False
        self.render_active_dashboard()
        return True

    async def rename_dashboard(self, dashboard_id: str, name: str) -> bool:
        name = name.strip()[:MAX_NAME_LENGTH]
        if not name:
            raise ValueError("Dashboard name must not be empty")

        def build(doc: DashboardsDocument) -> DashboardsDocument:
            if name_in_use(doc, name, exclude_id=dashboard_id):
                raise DuplicateDashboardName(name)
            return with_renamed(doc, dashboard_id, name)

        try:
            await self._commit_next(build)
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            return False
        except PersistenceFailure:
            self.on_error("Dashboard renaming failed.")
            return False
        return True

    async def delete_dashboard(self, dashboard_id: str) -> bool:
        try:
            previous, _ = await self._commit_next(lambda doc: with_deleted(doc, dashboard_id))
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            return False
        except PersistenceFailure:
            is_reset = len(self.store.document.dashboards) == 1
            self.on_error("Dashboard could not be reset." if is_reset else "Dashboard could not be deleted.")
            return False

        self.render_active_dashboard()
        if len(previous.dashboards) == 1:
            self.on_info("Dashboard has been reset.")
        return True

    async def create_dashboard(self, name: str = "New") -> Optional[str]:
        try:
            with self.grid.hold_saving():
                new_id = await self.gateway.create_dashboard(name)
                self.store.commit(await self.gateway.fetch_state())
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            return None
        except PersistenceFailure:
            self.on_error("Failed to create new dashboard.")
            return None

        self.render_active_dashboard()
        return new_id

    # ── Widgets ───────────────────────────────────────

    def _placement(self, w: int, h: int) -> Rect:
        size = Rect(x=0, y=0, w=w, h=h)
        if not self.grid.collides(size):
            return size
        cols, _ = self.grid.coords.resolve_overlay_dims()
        slot = find_free_slot(size, self.grid.items, cols if cols > 0 else self.grid.config.cols)
        return slot or size

    async def add_widget(self, widget_type: str, config: Optional[Dict[str, Any]] = None) -> Item:
        d = self.store.active_dashboard()
        if d is None:
            raise DashboardNotFound(self.store.document.active_id if self.store.loaded else "")

        try:
            base = self.registry.create_default_item(widget_type)
            rect = self._placement(base["w"], base["h"])
            item = Item(
                id=next_widget_id(d),
                x=rect.x,
                y=rect.y,
                w=base["w"],
                h=base["h"],
                type=widget_type,
                config={**base["config"], **(config or {})},
            )
            await self.grid.add_item(item)
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            raise
        except BoardError:
            self.on_error("Widget could not be added.")
            raise

        logger.info(f"[{item.id}] added {widget_type} at ({item.x},{item.y})")
        return item

    # ── Time range ────────────────────────────────────

    async def _persist_range(self, selector: RangeSelector) -> bool:
        try:
            await self._commit_next(lambda doc: with_range(doc, selector))
        except SaveInProgress:
            self.on_error(BUSY_MESSAGE)
            return False
        except PersistenceFailure:
            self.on_error("Failed to save range. (Check connection?)")
            raise

        self.sync_widgets()
        return True

    async def set_range_preset(self, preset: str, now: Optional[int] = None) -> bool:
        try:
            selector = preset_range(preset, now)
        except ValueError as e:
            self.on_error(str(e))
            return False
        return await self._persist_range(selector)

    async def set_custom_range(self, from_ts_ms: int, to_ts_ms: int) -> bool:
        try:
            selector = custom_range(from_ts_ms, to_ts_ms)
        except ValueError as e:
            self.on_error(str(e))
            return False
        return await self._persist_range(selector)
