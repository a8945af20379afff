"""
Drag controller: the pointer-gesture state machine for moving a single item.

States::

    IDLE -> DRAGGING -> COMMITTING -> IDLE
                     \\-> ROLLING_BACK -> IDLE

Only one session exists grid-wide. While a commit is outstanding the engine's
``saving`` flag refuses new sessions, so at most one persistence attempt is in
flight at any time.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional

from tileboard.grid.collision import collides
from tileboard.models import DragSession, Point, PointerEvent, Rect

if TYPE_CHECKING:
    from tileboard.grid.engine import GridEngine

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"


class DragOutcome(str, Enum):
    COMMITTED = "committed"
    REVERTED = "reverted"      # placement conflict, nothing persisted
    CANCELLED = "cancelled"
    IGNORED = "ignored"        # event did not belong to the active session


class DragController:
    def __init__(self, engine: "GridEngine"):
        self.engine = engine
        self.state = DragState.IDLE
        self.session: Optional[DragSession] = None
        self.captured_pointer: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.session is not None

    # ── pointerdown ───────────────────────────────────

    def pointer_down(self, item_id: str, event: PointerEvent) -> bool:
        """Start a session. Returns False when the gesture is not accepted."""
        engine = self.engine
        if not engine.is_editing or engine.saving or event.button != PRIMARY_BUTTON:
            return False
        if self.session is not None:
            return False

        item = engine.find_item(item_id)
        box = engine.renderer.client_box(item_id)
        if item is None or box is None:
            return False

        self.captured_pointer = event.pointer_id
        self.session = DragSession(
            item_id=item_id,
            pointer_id=event.pointer_id,
            start_rect=item.rect(),
            grab=Point(x=event.client_x - box.x, y=event.client_y - box.y),
            origin=engine.renderer.origin.model_copy(),
        )
        self.state = DragState.DRAGGING
        engine.renderer.find_container(item_id).classes.add("dragging")
        logger.debug(f"[{item_id}] drag started at ({item.x},{item.y})")
        return True

    # ── pointermove (snapped) ─────────────────────────

    def pointer_move(self, item_id: str, event: PointerEvent) -> Optional[Rect]:
        """Update the preview position. Visual only: no collision check, no state change."""
        s = self._session_for(item_id)
        if s is None or self.state != DragState.DRAGGING:
            return None

        px = event.client_x - s.origin.x - s.grab.x
        py = event.client_y - s.origin.y - s.grab.y
        x, y = self.engine.coords.pixel_to_cell(px, py, s.start_rect.w, s.start_rect.h)

        s.preview = Rect(x=x, y=y, w=s.start_rect.w, h=s.start_rect.h)
        self._show(item_id, s.preview)
        return s.preview

    # ── pointerup ─────────────────────────────────────

    async def pointer_up(self, item_id: str, event: Optional[PointerEvent] = None) -> DragOutcome:
        """
        Resolve the candidate and try to commit it.

        A candidate overlapping another item is reverted without touching
        persistence. If persistence fails the visual box goes back to the start
        position and the error propagates to the caller.
        """
        s = self._session_for(item_id)
        if s is None or self.state != DragState.DRAGGING:
            return DragOutcome.IGNORED

        self._release(item_id)
        engine = self.engine

        index = engine.index_of(item_id)
        if index == -1:
            self._end()
            return DragOutcome.IGNORED

        start = s.start_rect
        candidate = s.preview or start

        if collides(candidate, engine.items, ignore_id=item_id):
            logger.info(f"[{item_id}] drop at ({candidate.x},{candidate.y}) collides, reverting")
            self._show(item_id, start)
            self._end()
            return DragOutcome.REVERTED

        next_items = engine.get_items()
        next_items[index] = next_items[index].moved_to(candidate.x, candidate.y)

        self.state = DragState.COMMITTING
        try:
            await engine.persist(next_items)
        except Exception as e:
            self.state = DragState.ROLLING_BACK
            logger.warning(f"[{item_id}] commit failed, rolling back: {e}")
            self._show(item_id, start)
            raise
        finally:
            self._end()

        logger.info(f"[{item_id}] moved to ({candidate.x},{candidate.y})")
        return DragOutcome.COMMITTED

    # ── pointercancel ─────────────────────────────────

    def pointer_cancel(self, item_id: str) -> DragOutcome:
        s = self._session_for(item_id)
        if s is None or self.state != DragState.DRAGGING:
            return DragOutcome.IGNORED
        self._release(item_id)
        self._show(item_id, s.start_rect)
        self._end()
        return DragOutcome.CANCELLED

    # ── helpers ───────────────────────────────────────

    def _session_for(self, item_id: str) -> Optional[DragSession]:
        if self.session is None or self.session.item_id != item_id:
            return None
        return self.session

    def _show(self, item_id: str, rect: Rect):
        container = self.engine.renderer.find_container(item_id)
        if container is not None:
            self.engine.renderer.apply_item_style(container, rect)

    def _release(self, item_id: str):
        self.captured_pointer = None
        container = self.engine.renderer.find_container(item_id)
        if container is not None:
            container.classes.discard("dragging")

    def _end(self):
        self.session = None
        self.captured_pointer = None
        self.state = DragState.IDLE
