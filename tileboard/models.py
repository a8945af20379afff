"""
Data models for the persisted dashboards document and the grid layout.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Rect(BaseModel):
    """A grid-cell aligned rectangle."""
    x: int = Field(default=0, ge=0, description="X position in grid columns")
    y: int = Field(default=0, ge=0, description="Y position in grid rows")
    w: int = Field(default=1, ge=1, description="Width in grid columns")
    h: int = Field(default=1, ge=1, description="Height in grid rows")

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h


class Item(Rect):
    """A single placed widget on a dashboard."""
    id: str = Field(description="Unique identifier within the dashboard")
    type: str = Field(default="", description="Widget module type tag")
    config: Dict[str, Any] = Field(default_factory=dict, description="Widget specific settings")

    def rect(self) -> Rect:
        return Rect(x=self.x, y=self.y, w=self.w, h=self.h)

    def moved_to(self, x: int, y: int) -> "Item":
        return self.model_copy(update={"x": x, "y": y}, deep=True)


class RangeMode(str, Enum):
    PRESET = "preset"
    CUSTOM = "custom"


class RangeSelector(BaseModel):
    """Dashboard-wide time range."""
    model_config = ConfigDict(populate_by_name=True)

    mode: RangeMode = RangeMode.PRESET
    preset: Optional[str] = None
    from_ts_ms: int = Field(alias="fromTsMs")
    to_ts_ms: int = Field(alias="toTsMs")


class Dashboard(BaseModel):
    """A named collection of items. Item order is insertion order."""
    id: str
    name: str
    items: List[Item] = Field(default_factory=list)
    range: Optional[RangeSelector] = None


class DashboardsDocument(BaseModel):
    """Root persisted state."""
    model_config = ConfigDict(populate_by_name=True)

    version: int = 1
    active_id: Optional[str] = Field(default=None, alias="activeId")
    dashboards: List[Dashboard] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Grid configuration records ─────────────────────────

class Padding(BaseModel):
    left: int = 0
    right: int = 0
    top: int = 0
    bottom: int = 0


class OverlayBreakpoint(BaseModel):
    """Overlay grid dimensions for viewports up to ``max_width``."""
    model_config = ConfigDict(populate_by_name=True)

    max_width: float = Field(alias="maxWidth")
    cols: int
    rows: int


class PaddingBreakpoint(BaseModel):
    """Canvas padding for viewports up to ``max_width``."""
    model_config = ConfigDict(populate_by_name=True)

    max_width: float = Field(alias="maxWidth")
    padding: Padding = Field(default_factory=Padding)


# ── Ephemeral drag state ───────────────────────────────

class Point(BaseModel):
    x: float = 0
    y: float = 0


class PointerEvent(BaseModel):
    """Pointer input in client (viewport) pixel coordinates."""
    client_x: float
    client_y: float
    button: int = 0
    pointer_id: int = 1


class DragSession(BaseModel):
    item_id: str
    pointer_id: int
    start_rect: Rect
    grab: Point
    origin: Point
    preview: Optional[Rect] = None
