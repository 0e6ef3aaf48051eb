from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from core.embedding import EmbedHandle
from core.widgets import WidgetId


logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class RegistryEntry:
    handle: EmbedHandle
    embedded: bool = False
    rendered: bool = False
    selection_bound: bool = False


class WidgetRegistry:
    """Embed handles and lifecycle flags, keyed by widget id.

    A handle is created once per id and never replaced while the id stays
    mounted. ``embedded`` and ``rendered`` only ever go from False to True;
    dropping the entry is the only way to reset them.
    """

    def __init__(self) -> None:
        self._entries: Dict[WidgetId, RegistryEntry] = {}

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WidgetId]:
        return iter(list(self._entries))

    def register(self, widget_id: WidgetId, handle: EmbedHandle) -> bool:
        if widget_id in self._entries:
            logger.info("Skipping register for %s: a live handle already exists", widget_id)
            return False
        self._entries[widget_id] = RegistryEntry(handle=handle)
        return True

    def get(self, widget_id: WidgetId) -> Optional[EmbedHandle]:
        entry = self._entries.get(widget_id)
        return entry.handle if entry else None

    def items(self) -> List[Tuple[WidgetId, EmbedHandle]]:
        return [(widget_id, entry.handle) for widget_id, entry in self._entries.items()]

    def for_each(self, fn: Callable[[WidgetId, EmbedHandle], R]) -> List[R]:
        return [fn(widget_id, handle) for widget_id, handle in self.items()]

    def for_each_except(self, excluded: Optional[WidgetId], fn: Callable[[WidgetId, EmbedHandle], R]) -> List[R]:
        return [fn(widget_id, handle) for widget_id, handle in self.items() if widget_id != excluded]

    def mark_embedded(self, widget_id: WidgetId) -> bool:
        entry = self._entries.get(widget_id)
        if entry is None or entry.embedded:
            return False
        entry.embedded = True
        return True

    def mark_rendered(self, widget_id: WidgetId) -> bool:
        """Set the rendered flag; returns True only on the call that flips it."""
        entry = self._entries.get(widget_id)
        if entry is None or entry.rendered:
            return False
        entry.rendered = True
        return True

    def mark_selection_bound(self, widget_id: WidgetId) -> bool:
        """Flag that the selection listener is attached; True only the first time."""
        entry = self._entries.get(widget_id)
        if entry is None or entry.selection_bound:
            return False
        entry.selection_bound = True
        return True

    def is_embedded(self, widget_id: WidgetId) -> bool:
        entry = self._entries.get(widget_id)
        return bool(entry and entry.embedded)

    def is_rendered(self, widget_id: WidgetId) -> bool:
        entry = self._entries.get(widget_id)
        return bool(entry and entry.rendered)

    def remove(self, widget_id: WidgetId) -> Optional[EmbedHandle]:
        entry = self._entries.pop(widget_id, None)
        return entry.handle if entry else None

    def clear(self) -> None:
        self._entries.clear()
