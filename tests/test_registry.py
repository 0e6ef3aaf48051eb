from core.registry import WidgetRegistry
from core.widgets import StaticWidgetId, dynamic_id
from tests.fakes import FakeHandle

CATEGORY_VISUAL = StaticWidgetId("categoryVisual")


def test_register_is_idempotent_and_never_overwrites():
    registry = WidgetRegistry()
    first, second = FakeHandle("first"), FakeHandle("second")

    assert registry.register(CATEGORY_VISUAL, first)
    assert not registry.register(CATEGORY_VISUAL, second)
    assert registry.get(CATEGORY_VISUAL) is first
    assert len(registry) == 1


def test_get_unknown_returns_none():
    assert WidgetRegistry().get(dynamic_id(9)) is None


def test_for_each_except_skips_excluded_id():
    registry = WidgetRegistry()
    ids = [StaticWidgetId("a"), StaticWidgetId("b"), dynamic_id(1)]
    for widget_id in ids:
        registry.register(widget_id, FakeHandle(str(widget_id)))

    seen = registry.for_each_except(StaticWidgetId("b"), lambda widget_id, handle: handle.name)
    assert seen == ["a", "dynamic-1"]
    assert registry.for_each_except(None, lambda widget_id, handle: widget_id) == ids


def test_rendered_flag_flips_once():
    registry = WidgetRegistry()
    registry.register(CATEGORY_VISUAL, FakeHandle())

    assert not registry.is_rendered(CATEGORY_VISUAL)
    assert registry.mark_rendered(CATEGORY_VISUAL)
    assert not registry.mark_rendered(CATEGORY_VISUAL)
    assert registry.is_rendered(CATEGORY_VISUAL)
    assert not registry.mark_rendered(StaticWidgetId("missing"))


def test_embedded_flag_and_remove():
    registry = WidgetRegistry()
    handle = FakeHandle()
    registry.register(dynamic_id(2), handle)
    assert registry.mark_embedded(dynamic_id(2))
    assert not registry.mark_embedded(dynamic_id(2))
    assert registry.is_embedded(dynamic_id(2))

    assert registry.remove(dynamic_id(2)) is handle
    assert dynamic_id(2) not in registry
    assert not registry.is_embedded(dynamic_id(2))
    assert registry.register(dynamic_id(2), FakeHandle())


def test_selection_bound_once_per_entry():
    registry = WidgetRegistry()
    registry.register(CATEGORY_VISUAL, FakeHandle())
    assert registry.mark_selection_bound(CATEGORY_VISUAL)
    assert not registry.mark_selection_bound(CATEGORY_VISUAL)
    assert not registry.mark_selection_bound(StaticWidgetId("missing"))

    registry.remove(CATEGORY_VISUAL)
    registry.register(CATEGORY_VISUAL, FakeHandle())
    assert registry.mark_selection_bound(CATEGORY_VISUAL)
