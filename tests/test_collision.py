from conftest import make_item

from tileboard.grid.collision import collides, find_free_slot, overlaps
from tileboard.models import Rect


def test_overlap_is_symmetric():
    a = Rect(x=0, y=0, w=2, h=2)
    b = Rect(x=1, y=1, w=2, h=2)
    assert overlaps(a, b)
    assert overlaps(b, a)


def test_shared_edge_is_not_overlap():
    a = Rect(x=0, y=0, w=2, h=2)
    assert not overlaps(a, Rect(x=2, y=0, w=1, h=1))
    assert not overlaps(a, Rect(x=0, y=2, w=2, h=1))


def test_contained_rect_overlaps():
    assert overlaps(Rect(x=0, y=0, w=6, h=4), Rect(x=2, y=1, w=1, h=1))


def test_collides_ignores_own_item():
    items = [make_item("w1", 0, 0), make_item("w2", 4, 0)]
    assert not collides(Rect(x=1, y=0, w=2, h=2), items, ignore_id="w1")
    assert collides(Rect(x=3, y=0, w=2, h=2), items, ignore_id="w1")


def test_collides_with_empty_set():
    assert not collides(Rect(x=0, y=0, w=3, h=3), [])


def test_find_free_slot_scans_rows_then_columns():
    items = [make_item("w1", 0, 0, w=2, h=2), make_item("w2", 3, 0, w=1, h=1)]
    assert find_free_slot(Rect(w=1, h=1), items, cols=5) == Rect(x=2, y=0, w=1, h=1)
    assert find_free_slot(Rect(w=2, h=1), items, cols=5) == Rect(x=2, y=1, w=2, h=1)


def test_find_free_slot_gives_up():
    items = [make_item("w1", 0, 0, w=2, h=2)]
    assert find_free_slot(Rect(w=1, h=1), items, cols=2, max_rows=2) is None
