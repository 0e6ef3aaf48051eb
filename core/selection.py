from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from core.filters import FilterDescriptor, SharedFilterState, make_descriptor, slot_for
from core.normalizer import RandomSource, SystemRandomSource, normalize, pick_fallback
from core.widgets import WidgetId, WidgetSpec


logger = logging.getLogger(__name__)

# Target used by widgets whose clicks mean "show a random peer category".
RANDOM_PICK_TARGET = ("Product", "Product")


@dataclass(frozen=True)
class SelectedPoint:
    table: str
    column: str
    value: Any


def has_data_points(event: object) -> bool:
    if not isinstance(event, Mapping):
        return False
    points = event.get("dataPoints")
    return isinstance(points, (list, tuple)) and len(points) > 0


def extract_point(event: object) -> Optional[SelectedPoint]:
    """Pull ``identity[0].target`` and ``equals`` out of the first data point."""
    if not has_data_points(event):
        logger.info("Selection event has no data points")
        return None
    point = event["dataPoints"][0]  # type: ignore[index]
    identity = point.get("identity") if isinstance(point, Mapping) else None
    if not isinstance(identity, (list, tuple)) or not identity or not isinstance(identity[0], Mapping):
        logger.warning("Selection data point missing expected identity structure")
        return None
    first = identity[0]
    target = first.get("target")
    if not isinstance(target, Mapping) or not target.get("table") or not target.get("column"):
        logger.warning("Selection identity missing target table or column")
        return None
    value = first.get("equals")
    if value is None:
        logger.warning("No selected value (identity.equals) found in selection")
        return None
    return SelectedPoint(table=str(target["table"]), column=str(target["column"]), value=value)


class SelectionInterpreter:
    def __init__(
        self,
        state: SharedFilterState,
        lookup: Callable[[WidgetId], Optional[WidgetSpec]],
        random_source: Optional[RandomSource] = None,
    ) -> None:
        self.state = state
        self._lookup = lookup
        self._random = random_source or SystemRandomSource()

    def interpret(self, source_id: WidgetId, event: object) -> Optional[FilterDescriptor]:
        point = extract_point(event)
        if point is None:
            return None

        spec = self._lookup(source_id)
        if spec is not None and spec.always_random:
            table, column = RANDOM_PICK_TARGET
            value = pick_fallback(self._random)
            logger.info("Random peer category from %s: %s", source_id, value)
        else:
            table, column = point.table, point.column
            value = normalize(str(point.value), self._random)
            if value != str(point.value):
                logger.debug("Normalized %r to %r", point.value, value)

        descriptor = make_descriptor(table, column, value)
        if descriptor is None:
            logger.warning("Selection from %s produced an invalid filter: %s.%s=%r", source_id, table, column, value)
            return None

        slot = slot_for(table, column)
        if slot is None:
            logger.warning("Unhandled selection from %s: %s.%s, filtering directly", source_id, table, column)
        elif not self.state.set(slot, descriptor.value):
            logger.warning("Value %r is not a known %s option; shared state unchanged", descriptor.value, slot)
        else:
            logger.info("Selection from %s set %s=%s", source_id, slot, descriptor.value)
        return descriptor
