"""
Rectangle collision checks over an item set.
"""

from typing import Iterable, Optional

from tileboard.models import Item, Rect


def overlaps(a: Rect, b: Rect) -> bool:
    """Axis-aligned intersection. Rectangles sharing only an edge do not overlap."""
    return (
        a.x < b.x + b.w
        and a.x + a.w > b.x
        and a.y < b.y + b.h
        and a.y + a.h > b.y
    )


def collides(candidate: Rect, items: Iterable[Item], ignore_id: Optional[str] = None) -> bool:
    """True if ``candidate`` overlaps any item other than ``ignore_id``."""
    return any(it.id != ignore_id and overlaps(candidate, it) for it in items)


def find_free_slot(size: Rect, items: Iterable[Item], cols: int, max_rows: int = 1000) -> Optional[Rect]:
    """First free position for ``size`` scanning rows top-down, columns left-to-right."""
    items = list(items)
    for y in range(max_rows):
        for x in range(max(1, cols - size.w + 1)):
            rect = Rect(x=x, y=y, w=size.w, h=size.h)
            if not collides(rect, items):
                return rect
    return None
