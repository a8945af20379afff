"""
Widget host: keeps mounted widget instances in line with the item list.

For every sync pass:

1. mounted ids that are no longer present are unmounted;
2. each present item resolves its module by type (unknown types are skipped);
3. items whose container is not rendered yet are skipped until the next pass;
4. new items, type changes and replaced containers are remounted;
5. everything else receives a cheap ``update``.
"""

import logging
from typing import Any, Dict, Iterable, NamedTuple, Optional

from tileboard.grid.canvas import CanvasRenderer, ItemContainer
from tileboard.models import Item
from tileboard.widgets.base import WidgetContext
from tileboard.widgets.registry import WidgetRegistry

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "value1x1"


class MountedWidget(NamedTuple):
    type: str
    instance: Any
    container: ItemContainer


class WidgetHost:
    def __init__(self, registry: WidgetRegistry):
        self.registry = registry
        # item id -> mounted widget
        self.mounted: Dict[str, MountedWidget] = {}

    def unmount(self, item_id: str):
        """Idempotent. The entry is forgotten even if the module's teardown fails."""
        m = self.mounted.get(item_id)
        if m is None:
            return
        try:
            module = self.registry.get(m.type)
            if module is not None:
                module.unmount(m.instance)
        finally:
            del self.mounted[item_id]
        logger.debug(f"[{item_id}] unmounted {m.type}")

    def sync(self, items: Iterable[Item], renderer: CanvasRenderer, ctx: Optional[WidgetContext] = None):
        ctx = ctx or WidgetContext()
        items = list(items)

        present = {it.id for it in items}
        for item_id in list(self.mounted.keys()):
            if item_id not in present:
                self.unmount(item_id)

        for it in items:
            widget_type = it.type or DEFAULT_TYPE
            module = self.registry.get(widget_type)
            if module is None:
                logger.warning(f"[{it.id}] unknown widget type '{widget_type}', skipped")
                continue

            container = renderer.find_container(it.id)
            if container is None:
                logger.debug(f"[{it.id}] container not rendered yet, skipped")
                continue

            m = self.mounted.get(it.id)
            widget_ctx = ctx.for_item(it)

            if m is None or m.type != widget_type or m.container is not container:
                if m is not None:
                    self.unmount(it.id)
                container.clear()
                try:
                    instance = module.mount(container, widget_ctx)
                except Exception as e:
                    logger.error(f"[{it.id}] mounting {widget_type} failed: {e}", exc_info=True)
                    continue
                self.mounted[it.id] = MountedWidget(widget_type, instance, container)
                logger.debug(f"[{it.id}] mounted {widget_type}")
            else:
                try:
                    module.update(m.instance, widget_ctx)
                except Exception as e:
                    logger.error(f"[{it.id}] updating {widget_type} failed: {e}", exc_info=True)

    def dispose(self):
        for item_id in list(self.mounted.keys()):
            self.unmount(item_id)
