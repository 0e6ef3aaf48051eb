"""
Tests for visual order bookkeeping.
"""

from core.ordering import OrderManager, array_move
from core.widgets import DEFAULT_ORDER, StaticWidgetId, dynamic_id

A, B, C, D = DEFAULT_ORDER


def make_manager():
    saved = []
    return OrderManager(on_change=saved.append), saved


def test_array_move_is_a_move_not_a_swap():
    assert array_move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
    assert array_move(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]


def test_reorder_moves_and_notifies():
    manager, saved = make_manager()
    assert manager.reorder(A, C)
    assert manager.order == [B, C, A, D]
    assert saved == [[B, C, A, D]]


def test_reorder_round_trip_restores_order():
    original = list(DEFAULT_ORDER)
    for i, active in enumerate(original):
        for over in original:
            manager = OrderManager()
            manager.reorder(active, over)
            manager.reorder(active, manager.order[i])
            assert manager.order == original


def test_reorder_accepts_wire_strings():
    manager, _ = make_manager()
    assert manager.reorder("salesBySegmentVisual", "categoryVisual")
    assert manager.order == [D, A, B, C]


def test_reorder_noops():
    manager, saved = make_manager()
    assert not manager.reorder(A, A)
    assert not manager.reorder(A, dynamic_id(5))
    assert not manager.reorder("missing", B)
    assert not manager.reorder(None, B)
    assert manager.order == list(DEFAULT_ORDER)
    assert saved == []


def test_append_skips_existing_ids_with_mixed_types():
    manager, saved = make_manager()
    assert manager.append([dynamic_id(1), dynamic_id("2")]) == [dynamic_id(1), dynamic_id(2)]
    assert manager.append([dynamic_id("1"), dynamic_id(2), A]) == []
    assert manager.order == [A, B, C, D, dynamic_id(1), dynamic_id(2)]
    assert len(saved) == 1


def test_append_dedupes_within_batch():
    manager, _ = make_manager()
    assert manager.append([dynamic_id(3), dynamic_id("3")]) == [dynamic_id(3)]


def test_remove_only_dynamic_ids():
    manager, saved = make_manager()
    manager.append([dynamic_id(1)])
    assert manager.remove(A) is None
    assert manager.remove("dynamic-1") == dynamic_id(1)
    assert manager.order == list(DEFAULT_ORDER)
    assert len(saved) == 2


def test_load_sanitizes_and_does_not_save():
    manager, saved = make_manager()
    assert not manager.loaded
    order = manager.load(
        [D, dynamic_id(2), D, StaticWidgetId("retiredVisual"), B],
        known=lambda widget_id: str(widget_id) != "retiredVisual",
    )
    assert order == [D, dynamic_id(2), B, A, C]
    assert manager.loaded
    assert saved == []
