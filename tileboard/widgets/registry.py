"""
Widget registry: maps a type tag to its widget module.
"""

import logging
from typing import Dict, Iterable, List, Optional

from tileboard.errors import UnknownWidgetType
from tileboard.widgets.base import WidgetMeta, WidgetModule

logger = logging.getLogger(__name__)


class WidgetRegistry:
    def __init__(self, modules: Iterable[WidgetModule] = ()):
        self._modules: Dict[str, WidgetModule] = {}
        for m in modules:
            self.register(m)

    def register(self, module: WidgetModule) -> WidgetModule:
        if module.type in self._modules:
            logger.warning(f"Widget type '{module.type}' re-registered")
        self._modules[module.type] = module
        return module

    def get(self, widget_type: str) -> Optional[WidgetModule]:
        return self._modules.get(widget_type)

    def __contains__(self, widget_type: str) -> bool:
        return widget_type in self._modules

    def list_metas(self) -> List[WidgetMeta]:
        return [m.meta for m in self._modules.values()]

    def create_default_item(self, widget_type: str) -> dict:
        """Default size and a copy of the default config for ``widget_type``."""
        module = self.get(widget_type)
        if module is None:
            raise UnknownWidgetType(widget_type)
        meta = module.meta.model_copy(deep=True)
        return {
            "w": meta.size.w,
            "h": meta.size.h,
            "type": widget_type,
            "config": meta.defaults,
        }


def default_registry() -> WidgetRegistry:
    from tileboard.widgets.gauge import GaugeWidget
    from tileboard.widgets.linechart import LineChartWidget
    from tileboard.widgets.value import ValueWidget

    return WidgetRegistry([ValueWidget(), GaugeWidget(), LineChartWidget()])
