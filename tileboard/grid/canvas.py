"""
Canvas renderer: derives the canvas size, the snap overlay and one visual box
per item from the item set and the resolved breakpoints.

The render target is a plain in-memory model. Every full render produces new
``ItemContainer`` objects so that anything holding on to a container (the
widget host) can tell the old box has been replaced.
"""

import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from tileboard.grid.coordinates import CoordinateModel
from tileboard.models import Item, Padding, Point, Rect

logger = logging.getLogger(__name__)


class OverlayCell(NamedTuple):
    left: int
    top: int


class ItemContainer:
    """Visual box of one item. Widgets render into ``content``."""

    def __init__(self, item_id: str, generation: int):
        self.item_id = item_id
        self.generation = generation
        self.left = 0
        self.top = 0
        self.width = 0
        self.height = 0
        self.classes: set[str] = {"grid-item"}
        self.content: Dict[str, Any] = {}

    def clear(self):
        self.content.clear()

    def __repr__(self) -> str:
        return (
            f"ItemContainer({self.item_id!r}, gen={self.generation}, "
            f"box=({self.left},{self.top},{self.width},{self.height}))"
        )


class CanvasRenderer:
    def __init__(self, coords: CoordinateModel, cell_inset: int = 4):
        self.coords = coords
        self.cell_inset = cell_inset
        self.width = 0
        self.height = 0
        self.css_vars: Dict[str, str] = {}
        self.overlay: List[OverlayCell] = []
        self.containers: Dict[str, ItemContainer] = {}
        self.generation = 0
        self.editing = False
        # canvas top-left corner in client coordinates
        self.origin = Point()

    # ── Sizing ────────────────────────────────────────

    def apply_css_vars(self) -> Padding:
        pad = self.coords.resolve_padding()
        self.css_vars = {
            "--grid-cell": f"{self.coords.cell}px",
            "--cell-inset": f"{self.cell_inset}px",
            "--grid-pad-left": f"{pad.left}px",
            "--grid-pad-right": f"{pad.right}px",
            "--grid-pad-top": f"{pad.top}px",
            "--grid-pad-bottom": f"{pad.bottom}px",
        }
        return pad

    def update_canvas_size(self, items: Iterable[Item]):
        self.apply_css_vars()
        self.width, self.height = self.coords.canvas_extent(items)

    # ── Overlay ───────────────────────────────────────

    def set_editing(self, editing: bool):
        self.editing = editing
        self.render_overlay()

    def render_overlay(self):
        self.overlay = []
        if not self.editing:
            return

        cols, rows = self.coords.resolve_overlay_dims()
        for y in range(rows):
            for x in range(cols):
                left, top = self.coords.cell_to_pixel(x, y)
                self.overlay.append(OverlayCell(left, top))

    # ── Items ─────────────────────────────────────────

    def apply_item_style(self, container: ItemContainer, rect: Rect):
        container.left, container.top, container.width, container.height = self.coords.rect_to_box(rect)

    def render_item(self, item: Item) -> ItemContainer:
        container = ItemContainer(item.id, self.generation)
        self.apply_item_style(container, item)
        container.content["hint"] = item.id
        return container

    def render_all(self, items: Iterable[Item]):
        self.generation += 1
        self.render_overlay()
        self.containers = {it.id: self.render_item(it) for it in items}
        logger.debug(f"Rendered {len(self.containers)} items (generation {self.generation})")

    def find_container(self, item_id: str) -> Optional[ItemContainer]:
        return self.containers.get(item_id)

    def client_box(self, item_id: str) -> Optional[Point]:
        """Top-left corner of an item's box in client coordinates."""
        container = self.find_container(item_id)
        if container is None:
            return None
        return Point(x=self.origin.x + container.left, y=self.origin.y + container.top)
