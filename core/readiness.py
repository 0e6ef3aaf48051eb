from __future__ import annotations

import logging
from typing import Callable, List, Optional

from core.ordering import OrderManager
from core.registry import WidgetRegistry


logger = logging.getLogger(__name__)


class ReadinessTracker:
    """True once the order has loaded and every ordered visual has rendered.

    :meth:`is_ready` reads live state, so it is never stale. :meth:`refresh`
    is called after anything that can change the answer and notifies
    subscribers only when the value flips.
    """

    def __init__(self, order: OrderManager, registry: WidgetRegistry) -> None:
        self.order = order
        self.registry = registry
        self._last: Optional[bool] = None
        self._subscribers: List[Callable[[bool], None]] = []

    def pending(self) -> List[str]:
        return [str(widget_id) for widget_id in self.order if not self.registry.is_rendered(widget_id)]

    def is_ready(self) -> bool:
        return self.order.loaded and not self.pending()

    def subscribe(self, fn: Callable[[bool], None]) -> Callable[[], None]:
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    def refresh(self) -> bool:
        ready = self.is_ready()
        if ready != self._last:
            self._last = ready
            if ready:
                logger.info("All visuals reported rendered")
            else:
                logger.info("Waiting for visuals to render: %s", ", ".join(self.pending()) or "order not loaded")
            for fn in list(self._subscribers):
                fn(ready)
        return ready
