"""
Dashboard state container.

``DashboardStore`` holds the last committed ``DashboardsDocument``. Readers get
snapshots; ``commit`` is the only way to change it. The ``with_*`` functions
build the next document from a given one without touching the input, so a
failed persistence attempt leaves the committed state exactly as it was.
"""

import logging
from typing import List, Optional

from tileboard.errors import DashboardNotFound
from tileboard.models import Dashboard, DashboardsDocument, Item, RangeSelector

logger = logging.getLogger(__name__)

RESET_NAME = "Main"


def get_active_dashboard(doc: Optional[DashboardsDocument]) -> Optional[Dashboard]:
    if doc is None:
        return None
    for d in doc.dashboards:
        if d.id == doc.active_id:
            return d
    return None


def next_widget_id(dashboard: Optional[Dashboard]) -> str:
    used = {it.id for it in dashboard.items} if dashboard else set()
    i = 1
    while f"w{i}" in used:
        i += 1
    return f"w{i}"


def _find(doc: DashboardsDocument, dashboard_id: str) -> Dashboard:
    for d in doc.dashboards:
        if d.id == dashboard_id:
            return d
    raise DashboardNotFound(dashboard_id)


# ── Next-document builders ────────────────────────────

def with_items(doc: DashboardsDocument, items: List[Item], dashboard_id: Optional[str] = None) -> DashboardsDocument:
    """Replace the item list of one dashboard (the active one by default)."""
    nxt = doc.model_copy(deep=True)
    target = _find(nxt, dashboard_id or nxt.active_id)
    target.items = [it.model_copy(deep=True) for it in items]
    return nxt


def with_renamed(doc: DashboardsDocument, dashboard_id: str, name: str) -> DashboardsDocument:
    nxt = doc.model_copy(deep=True)
    _find(nxt, dashboard_id).name = name
    return nxt


def with_active(doc: DashboardsDocument, dashboard_id: str) -> DashboardsDocument:
    nxt = doc.model_copy(deep=True)
    _find(nxt, dashboard_id)
    nxt.active_id = dashboard_id
    return nxt


def with_range(doc: DashboardsDocument, selector: Optional[RangeSelector], dashboard_id: Optional[str] = None) -> DashboardsDocument:
    nxt = doc.model_copy(deep=True)
    _find(nxt, dashboard_id or nxt.active_id).range = selector.model_copy() if selector else None
    return nxt


def with_deleted(doc: DashboardsDocument, dashboard_id: str) -> DashboardsDocument:
    """
    Remove a dashboard. The last remaining dashboard is reset in place
    (name "Main", no items) instead, so the list never becomes empty.
    """
    nxt = doc.model_copy(deep=True)
    target = _find(nxt, dashboard_id)

    if len(nxt.dashboards) == 1:
        target.name = RESET_NAME
        target.items = []
        return nxt

    nxt.dashboards = [d for d in nxt.dashboards if d.id != dashboard_id]
    if nxt.active_id == dashboard_id:
        nxt.active_id = nxt.dashboards[0].id
    return nxt


def name_in_use(doc: DashboardsDocument, name: str, exclude_id: Optional[str] = None) -> bool:
    wanted = name.strip().lower()
    return any(d.id != exclude_id and (d.name or "").strip().lower() == wanted for d in doc.dashboards)


# ── Store ─────────────────────────────────────────────

class DashboardStore:
    def __init__(self, document: Optional[DashboardsDocument] = None):
        self._document = document.model_copy(deep=True) if document else None

    @property
    def loaded(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> Optional[DashboardsDocument]:
        """Snapshot of the committed document."""
        return self._document.model_copy(deep=True) if self._document else None

    def active_dashboard(self) -> Optional[Dashboard]:
        d = get_active_dashboard(self._document)
        return d.model_copy(deep=True) if d else None

    def commit(self, next_document: DashboardsDocument):
        """The single mutation path. Call only after the document was persisted."""
        self._document = next_document.model_copy(deep=True)
        logger.debug(
            f"Committed document: {len(self._document.dashboards)} dashboards, active={self._document.active_id}"
        )
