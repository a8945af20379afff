"""
Domain exceptions raised by the grid engine, the widget layer and the board controller.
"""

from typing import Optional

from tileboard.models import Rect


class BoardError(Exception):
    """Base class for every tile board failure."""


class PlacementConflict(BoardError):
    """A candidate rectangle overlaps another item."""

    def __init__(self, item_id: str, rect: Rect, message: Optional[str] = None):
        self.item_id = item_id
        self.rect = rect
        self.message = message or (
            f"Item '{item_id}' at ({rect.x},{rect.y}) {rect.w}x{rect.h} overlaps another item"
        )
        super().__init__(self.message)


class PersistenceFailure(BoardError):
    """The persistence gateway rejected a commit or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UnknownWidgetType(BoardError):
    def __init__(self, widget_type: str):
        self.widget_type = widget_type
        super().__init__(f"Unknown widget type: {widget_type}")


class DashboardNotFound(BoardError):
    def __init__(self, dashboard_id: str):
        self.dashboard_id = dashboard_id
        super().__init__(f"Dashboard '{dashboard_id}' not found")


class DuplicateDashboardName(BoardError):
    def __init__(self, name: str):
        self.name = name
        super().__init__("This name is already in use.")


class SaveInProgress(BoardError):
    """Another commit is still outstanding; only one may be in flight."""

    def __init__(self, message: str = "A save is already in progress"):
        super().__init__(message)
