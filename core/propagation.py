from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from core.embedding import EmbedHandle
from core.filters import FilterDescriptor, SharedFilterState
from core.registry import WidgetRegistry
from core.widgets import WidgetId, WidgetSpec


logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    action: str
    targets: List[WidgetId] = field(default_factory=list)
    failed: List[WidgetId] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class FilterPropagator:
    """Pushes filters from one widget (or from shared state) out to the others.

    Every fan-out runs its targets concurrently and settles each one on its
    own: a rejected call is logged and counted, it never stops the rest.
    """

    def __init__(
        self,
        registry: WidgetRegistry,
        state: SharedFilterState,
        lookup: Callable[[WidgetId], Optional[WidgetSpec]],
    ) -> None:
        self.registry = registry
        self.state = state
        self._lookup = lookup

    async def _call(self, action: str, widget_id: WidgetId, call: Callable[[], Awaitable[Any]]) -> bool:
        try:
            await call()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error %s on visual %s", action, widget_id)
            return False
        return True

    async def _fan_out(self, action: str, calls: List[Tuple[WidgetId, Callable[[], Awaitable[Any]]]]) -> FanOutResult:
        result = FanOutResult(action=action, targets=[widget_id for widget_id, _ in calls])
        if not calls:
            return result
        outcomes = await asyncio.gather(*(self._call(action, widget_id, call) for widget_id, call in calls))
        result.failed = [widget_id for (widget_id, _), ok in zip(calls, outcomes) if not ok]
        if result.failed:
            logger.warning("%s failed on %d of %d visuals", action, len(result.failed), len(calls))
        return result

    @staticmethod
    def _set_filters(filters: List[Dict[str, Any]]) -> Callable[[WidgetId, EmbedHandle], Tuple[WidgetId, Callable[[], Awaitable[Any]]]]:
        return lambda widget_id, handle: (widget_id, lambda: handle.set_filters(list(filters)))

    @staticmethod
    def _remove_filters(widget_id: WidgetId, handle: EmbedHandle) -> Tuple[WidgetId, Callable[[], Awaitable[Any]]]:
        return widget_id, handle.remove_filters

    async def propagate_single(self, source_id: Optional[WidgetId], descriptor: Optional[FilterDescriptor]) -> FanOutResult:
        if descriptor is None or not descriptor.is_valid():
            logger.info("Skipping application of invalid/null filter")
            return FanOutResult(action="set_filters")
        logger.info("Applying filter from %s to other visuals: %s", source_id or "unknown", descriptor.to_dict())
        calls = self.registry.for_each_except(source_id, self._set_filters([descriptor.to_basic_filter()]))
        return await self._fan_out("set_filters", calls)

    async def apply_shared_state(self) -> FanOutResult:
        """Replace the basic filters of every visual with the current shared state."""
        filters = [descriptor.to_basic_filter() for descriptor in self.state.descriptors()]
        logger.info("Applying %d filters from shared state", len(filters))
        calls = self.registry.for_each(self._set_filters(filters))
        return await self._fan_out("set_filters", calls)

    async def clear_all(self) -> FanOutResult:
        self.state.reset_all()
        calls = self.registry.for_each(self._remove_filters)
        result = await self._fan_out("remove_filters", calls)
        logger.info("All filters reset")
        return result

    async def clear_from_source(self, source_id: WidgetId) -> FanOutResult:
        spec = self._lookup(source_id)
        owned = spec.owned_slots if spec is not None else frozenset()
        reset = self.state.reset(sorted(owned))
        if reset:
            logger.info("Clear on %s reset %s", source_id, ", ".join(reset))

        calls = self.registry.for_each_except(source_id, self._remove_filters)
        result = await self._fan_out("remove_filters", calls)

        # remove_filters drops every basic filter, so put back whatever is still selected.
        if self.state.has_concrete():
            logger.info("Re-applying remaining shared filters after clear")
            refilter = await self.apply_shared_state()
            result.failed.extend(widget_id for widget_id in refilter.failed if widget_id not in result.failed)
        return result
