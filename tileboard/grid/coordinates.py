"""
Pixel <-> grid-cell mapping with responsive breakpoints.

The cell size is fixed. What changes with the viewport width is the number of
overlay columns/rows an item may be dragged into and the padding around the
grid.
"""

import math
from typing import Iterable, Optional, Sequence, Tuple

from tileboard.config_loader import GridConfig
from tileboard.models import Padding, Rect


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def _snap(v: float) -> int:
    # half-way rounds up, not to even
    return math.floor(v + 0.5)


class CoordinateModel:
    """Maps between canvas pixels and grid cells for the current viewport."""

    def __init__(self, config: GridConfig, viewport_width: float = 1920):
        self.cell = config.cell
        self.cols = config.cols
        self.overlay_cols = config.overlay_cols
        self.overlay_rows = config.overlay_rows
        self.padding = config.padding
        # Tables are scanned in ascending max_width order
        self.overlay_breakpoints = self._sorted(config.overlay_breakpoints)
        self.padding_breakpoints = self._sorted(config.padding_breakpoints)
        self.viewport_width = viewport_width

    @staticmethod
    def _sorted(table: Optional[Sequence]) -> Optional[list]:
        if table is None:
            return None
        return sorted(table, key=lambda bp: bp.max_width)

    def set_viewport_width(self, width: float):
        self.viewport_width = width

    # ── Breakpoint resolution ─────────────────────────

    def resolve_overlay_dims(self, viewport_width: Optional[float] = None) -> Tuple[int, int]:
        """Return ``(cols, rows)`` of the first breakpoint covering the width."""
        width = self.viewport_width if viewport_width is None else viewport_width
        rule = self._first_match(self.overlay_breakpoints, width)
        if rule is None:
            return self.overlay_cols, self.overlay_rows
        return rule.cols, rule.rows

    def resolve_padding(self, viewport_width: Optional[float] = None) -> Padding:
        width = self.viewport_width if viewport_width is None else viewport_width
        rule = self._first_match(self.padding_breakpoints, width)
        if rule is None:
            return self.padding.model_copy()
        return rule.padding.model_copy()

    @staticmethod
    def _first_match(table: Optional[Iterable], width: float):
        if not table:
            return None
        for bp in table:
            if width <= bp.max_width:
                return bp
        return None

    # ── Conversions ───────────────────────────────────

    def cell_to_pixel(self, cell_x: int, cell_y: int) -> Tuple[int, int]:
        pad = self.resolve_padding()
        return pad.left + cell_x * self.cell, pad.top + cell_y * self.cell

    def pixel_to_cell(self, px: float, py: float, w: int = 1, h: int = 1) -> Tuple[int, int]:
        """
        Snap a canvas pixel position to the nearest cell.

        The result is clamped so that an item of size ``w`` x ``h`` stays fully
        inside the resolved overlay area.
        """
        pad = self.resolve_padding()
        cols, rows = self.resolve_overlay_dims()
        max_x = max(0, cols - w)
        max_y = max(0, rows - h)
        x = _clamp(_snap((px - pad.left) / self.cell), 0, max_x)
        y = _clamp(_snap((py - pad.top) / self.cell), 0, max_y)
        return x, y

    def rect_to_box(self, rect: Rect) -> Tuple[int, int, int, int]:
        """Pixel ``(left, top, width, height)`` of a rectangle."""
        left, top = self.cell_to_pixel(rect.x, rect.y)
        return left, top, rect.w * self.cell, rect.h * self.cell

    def canvas_extent(self, items: Iterable[Rect]) -> Tuple[int, int]:
        """
        Canvas pixel size. Grows past the nominal grid to fit placed items.
        """
        pad = self.resolve_padding()
        _, overlay_rows = self.resolve_overlay_dims()

        max_right = 0
        max_bottom = 0
        for it in items:
            max_right = max(max_right, it.x + it.w)
            max_bottom = max(max_bottom, it.y + it.h)

        needed_cols = max(self.cols, max_right + 1)
        needed_rows = max(overlay_rows, max_bottom + 1)

        width = needed_cols * self.cell + pad.left + pad.right
        height = needed_rows * self.cell + pad.top + pad.bottom
        return width, height
