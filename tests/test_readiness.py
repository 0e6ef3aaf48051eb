from core.ordering import OrderManager
from core.readiness import ReadinessTracker
from core.registry import WidgetRegistry
from core.widgets import DEFAULT_ORDER, dynamic_id
from tests.fakes import FakeHandle


def make_tracker():
    order = OrderManager()
    registry = WidgetRegistry()
    for widget_id in DEFAULT_ORDER:
        registry.register(widget_id, FakeHandle(str(widget_id)))
    return order, registry, ReadinessTracker(order, registry)


def test_not_ready_until_order_loaded():
    order, registry, tracker = make_tracker()
    for widget_id in DEFAULT_ORDER:
        registry.mark_rendered(widget_id)
    assert not tracker.is_ready()
    order.mark_loaded()
    assert tracker.is_ready()


def test_ready_flips_on_last_render():
    order, registry, tracker = make_tracker()
    order.mark_loaded()
    changes = []
    tracker.subscribe(changes.append)
    tracker.refresh()

    *head, last = DEFAULT_ORDER
    for widget_id in head:
        registry.mark_rendered(widget_id)
        assert not tracker.refresh()
    assert tracker.pending() == [str(last)]

    registry.mark_rendered(last)
    assert tracker.refresh()
    assert changes == [False, True]


def test_adding_a_widget_makes_it_pending_again():
    order, registry, tracker = make_tracker()
    order.mark_loaded()
    for widget_id in DEFAULT_ORDER:
        registry.mark_rendered(widget_id)
    assert tracker.refresh()

    order.append([dynamic_id(1)])
    assert not tracker.is_ready()
    registry.register(dynamic_id(1), FakeHandle())
    registry.mark_rendered(dynamic_id(1))
    assert tracker.is_ready()

    order.remove(dynamic_id(1))
    assert tracker.is_ready()


def test_unsubscribe():
    order, _, tracker = make_tracker()
    changes = []
    unsubscribe = tracker.subscribe(changes.append)
    unsubscribe()
    tracker.refresh()
    assert changes == []
