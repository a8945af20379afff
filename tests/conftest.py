import asyncio
import copy
from typing import Any

import pytest

from tileboard.config_loader import GridConfig
from tileboard.errors import PersistenceFailure
from tileboard.models import Dashboard, DashboardsDocument, Item, Padding
from tileboard.widgets.base import WidgetMeta, WidgetModule, WidgetSize


@pytest.fixture
def grid_config() -> GridConfig:
    # 12x8 draggable overlay, 12px padding, no breakpoints
    return GridConfig(
        cell=80,
        cols=40,
        overlay_cols=12,
        overlay_rows=8,
        padding=Padding(left=12, right=12, top=12, bottom=12),
    )


def make_item(item_id: str, x: int, y: int, w: int = 2, h: int = 2, type: str = "value1x1", **config) -> Item:
    return Item(id=item_id, x=x, y=y, w=w, h=h, type=type, config=config)


class RecordingWidget(WidgetModule):
    """Widget module double that records every lifecycle call."""

    def __init__(self, widget_type: str = "value1x1", w: int = 1, h: int = 1):
        self.meta = WidgetMeta(
            type=widget_type,
            label=widget_type,
            size=WidgetSize(w=w, h=h),
            defaults={"title": widget_type},
        )
        self.mounts: list[str] = []
        self.updates: list[str] = []
        self.unmounts: list[str] = []

    def mount(self, container, ctx) -> Any:
        self.mounts.append(ctx.item.id)
        container.content["mounted"] = ctx.item.id
        return {"id": ctx.item.id, "container": container}

    def update(self, instance, ctx):
        self.updates.append(ctx.item.id)

    def unmount(self, instance):
        self.unmounts.append(instance["id"])


class FakeGateway:
    """In-memory persistence gateway; set ``fail`` to reject writes."""

    def __init__(self, document: DashboardsDocument):
        self.stored = document.to_wire()
        self.fail = False
        self.commits: list[DashboardsDocument] = []
        self.client = None
        self._next = 0

    async def fetch_state(self) -> DashboardsDocument:
        return DashboardsDocument.model_validate(copy.deepcopy(self.stored))

    async def commit_state(self, next_document: DashboardsDocument):
        if self.fail:
            raise PersistenceFailure("PUT /api/dashboards-document failed", status_code=500)
        self.commits.append(next_document)
        self.stored = next_document.to_wire()

    async def create_dashboard(self, name: str = "New") -> str:
        if self.fail:
            raise PersistenceFailure("POST /api/dashboards-document failed", status_code=500)
        self._next += 1
        new_id = f"dnew{self._next}"
        self.stored["dashboards"].append({"id": new_id, "name": name, "items": []})
        self.stored["activeId"] = new_id
        return new_id


class SlowGateway(FakeGateway):
    """Gateway whose writes take a while, so other actions can start meanwhile."""

    def __init__(self, document: DashboardsDocument, delay: float = 0.01):
        super().__init__(document)
        self.delay = delay

    async def commit_state(self, next_document: DashboardsDocument):
        await asyncio.sleep(self.delay)
        await super().commit_state(next_document)


def make_document(*dashboards: Dashboard, active_id: str | None = None) -> DashboardsDocument:
    return DashboardsDocument(
        version=1,
        active_id=active_id or dashboards[0].id,
        dashboards=list(dashboards),
    )
