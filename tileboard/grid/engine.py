"""
Grid engine: owns the item list of one dashboard and ties the coordinate
model, renderer and drag controller together.

The item list is replaced only after the ``on_change`` callback (persistence)
has succeeded; it is never mutated in place.
"""

import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterable, Iterator, List, Optional

from tileboard.config_loader import GridConfig
from tileboard.errors import BoardError, PlacementConflict, SaveInProgress
from tileboard.grid.canvas import CanvasRenderer, ItemContainer
from tileboard.grid.collision import collides
from tileboard.grid.coordinates import CoordinateModel
from tileboard.grid.drag import DragController
from tileboard.models import Item, Rect

logger = logging.getLogger(__name__)

OnChange = Callable[[List[Item]], Awaitable[None]]


async def _accept(items: List[Item]) -> None:
    return None


def _clone(items: Iterable[Item]) -> List[Item]:
    return [it.model_copy(deep=True) for it in items]


class GridEngine:
    def __init__(
        self,
        config: GridConfig,
        on_change: Optional[OnChange] = None,
        on_render: Optional[Callable[[], None]] = None,
        viewport_width: float = 1920,
    ):
        self.config = config
        self.coords = CoordinateModel(config, viewport_width)
        self.renderer = CanvasRenderer(self.coords, config.cell_inset)
        self.drag = DragController(self)
        self.on_change = on_change or _accept
        self.on_render = on_render

        self._items: tuple[Item, ...] = ()
        self._editing = False
        self.saving = False

        self.update_canvas_size()
        self.render_all()

    # ── Read access ───────────────────────────────────

    @property
    def is_editing(self) -> bool:
        return self._editing

    @property
    def items(self) -> tuple[Item, ...]:
        """Committed items. Treat as read-only; use ``get_items`` for a mutable copy."""
        return self._items

    def get_items(self) -> List[Item]:
        return _clone(self._items)

    def find_item(self, item_id: str) -> Optional[Item]:
        for it in self._items:
            if it.id == item_id:
                return it
        return None

    def index_of(self, item_id: str) -> int:
        for i, it in enumerate(self._items):
            if it.id == item_id:
                return i
        return -1

    def find_container(self, item_id: str) -> Optional[ItemContainer]:
        return self.renderer.find_container(item_id)

    def collides(self, rect: Rect, ignore_id: Optional[str] = None) -> bool:
        return collides(rect, self._items, ignore_id)

    # ── Rendering ─────────────────────────────────────

    def update_canvas_size(self):
        self.renderer.update_canvas_size(self._items)

    def render_all(self):
        self.renderer.render_all(self._items)
        if self.on_render is not None:
            self.on_render()

    def resize(self, viewport_width: float):
        self.coords.set_viewport_width(viewport_width)
        self.update_canvas_size()
        if self._editing:
            self.render_all()
        else:
            # keep the mounted containers, only move them
            for it in self._items:
                container = self.renderer.find_container(it.id)
                if container is not None:
                    self.renderer.apply_item_style(container, it)

    # ── Public API ────────────────────────────────────

    def set_edit_mode(self, editing: bool):
        self._editing = editing
        self.renderer.set_editing(editing)

    def set_items(self, items: Optional[Iterable[Item]]):
        self._items = tuple(_clone(items or []))
        self.update_canvas_size()
        self.render_all()

    async def add_item(self, item: Item):
        """Place a new item after checking it against the current set, then persist."""
        if self.find_item(item.id) is not None:
            raise BoardError(f"Item '{item.id}' already exists")
        if self.collides(item):
            raise PlacementConflict(item.id, item.rect())

        next_items = self.get_items()
        next_items.append(item.model_copy(deep=True))
        await self.persist(next_items)

    @contextmanager
    def hold_saving(self) -> Iterator[None]:
        """
        Grid-wide save gate. Every document write (layout or not) runs inside
        it, so at most one commit is outstanding at any time.
        """
        if self.saving:
            raise SaveInProgress()
        self.saving = True
        try:
            yield
        finally:
            self.saving = False

    async def persist(self, next_items: List[Item]):
        """Persist first, commit only on success."""
        with self.hold_saving():
            await self.on_change(_clone(next_items))
            self._items = tuple(next_items)
            self.update_canvas_size()
            self.render_all()
