from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from core.widgets import DEFAULT_ORDER, StaticWidgetId, WidgetId


logger = logging.getLogger(__name__)


def array_move(items: Sequence[WidgetId], old_index: int, new_index: int) -> List[WidgetId]:
    out = list(items)
    out.insert(new_index, out.pop(old_index))
    return out


class OrderManager:
    """Ordered, duplicate-free list of the widget ids shown on the grid.

    Mutations go through :meth:`reorder`, :meth:`append` and :meth:`remove`;
    each one that changes the list calls ``on_change`` with the new order.
    Ids are matched by their string form, so ``3`` and ``"3"`` are the same
    report.
    """

    def __init__(
        self,
        on_change: Optional[Callable[[List[WidgetId]], None]] = None,
        default: Sequence[WidgetId] = DEFAULT_ORDER,
    ) -> None:
        self._default = list(default)
        self._order: List[WidgetId] = list(default)
        self._on_change = on_change
        self.loaded = False

    @property
    def order(self) -> List[WidgetId]:
        return list(self._order)

    def __contains__(self, widget_id: object) -> bool:
        return self.index(widget_id) != -1

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self):
        return iter(list(self._order))

    def index(self, widget_id: object) -> int:
        key = str(widget_id)
        for i, existing in enumerate(self._order):
            if str(existing) == key:
                return i
        return -1

    def find(self, widget_id: object) -> Optional[WidgetId]:
        i = self.index(widget_id)
        return self._order[i] if i != -1 else None

    def load(self, ids: Optional[Iterable[WidgetId]], *, known: Callable[[WidgetId], bool] = lambda _: True) -> List[WidgetId]:
        """Install a persisted order; does not schedule a save.

        Duplicates and ids ``known`` rejects are dropped, and any default id
        missing from the stored list is appended so built-in visuals never
        disappear.
        """
        order: List[WidgetId] = []
        seen = set()
        for widget_id in ids or []:
            key = str(widget_id)
            if key in seen:
                continue
            if not known(widget_id):
                logger.warning("Dropping %s from stored order: no matching visual", key)
                continue
            seen.add(key)
            order.append(widget_id)
        for widget_id in self._default:
            if str(widget_id) not in seen:
                seen.add(str(widget_id))
                order.append(widget_id)
        self._order = order
        self.loaded = True
        return self.order

    def mark_loaded(self) -> None:
        self.loaded = True

    def reorder(self, active_id: object, over_id: object) -> bool:
        if active_id is None or over_id is None or str(active_id) == str(over_id):
            return False
        old_index = self.index(active_id)
        new_index = self.index(over_id)
        if old_index == -1 or new_index == -1:
            return False
        self._order = array_move(self._order, old_index, new_index)
        logger.debug("Moved %s to position %d", active_id, new_index)
        self._changed()
        return True

    def append(self, ids: Iterable[WidgetId]) -> List[WidgetId]:
        added: List[WidgetId] = []
        for widget_id in ids:
            if widget_id in self:
                continue
            self._order.append(widget_id)
            added.append(widget_id)
        if added:
            self._changed()
        return added

    def remove(self, widget_id: object) -> Optional[WidgetId]:
        i = self.index(widget_id)
        if i == -1:
            return None
        existing = self._order[i]
        if isinstance(existing, StaticWidgetId):
            logger.warning("Built-in visual %s cannot be removed", existing)
            return None
        del self._order[i]
        self._changed()
        return existing

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.order)
