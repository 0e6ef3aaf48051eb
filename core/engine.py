"""Dashboard engine: wires the registry, filters, order and persistence together.

The hosting UI creates one :class:`DashboardEngine` per mounted dashboard,
attaches a container for every visual it lays out, and forwards user
actions (dropdown filters, drag-and-drop, adding reports, the clear
button). Everything the embedding library reports back arrives through the
callbacks bound in :meth:`DashboardEngine._bind_events`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, Iterable, List, Mapping, Optional, Set

import httpx

from core.config import DashboardSettings, load_settings
from core.embedding import DATA_SELECTED, ERROR, LOADED, RENDERED, EmbedData, EmbedHandle, EmbedService, visual_config
from core.errors import DashboardError
from core.filters import CATEGORY, SEGMENT, SharedFilterState
from core.normalizer import RandomSource
from core.ordering import OrderManager
from core.persistence import DashboardApiClient, PersistenceBridge
from core.propagation import FanOutResult, FilterPropagator
from core.readiness import ReadinessTracker
from core.registry import WidgetRegistry
from core.selection import SelectionInterpreter, has_data_points
from core.snapshot import DashboardSnapshot, build_snapshot
from core.widgets import Report, StaticWidgetId, WidgetId, WidgetSpec, resolve_spec


logger = logging.getLogger(__name__)


def event_detail(event: Any) -> Any:
    """Unwrap ``event.detail`` when the library hands over an event object."""
    if isinstance(event, Mapping) and "detail" in event:
        return event["detail"]
    detail = getattr(event, "detail", None)
    return detail if detail is not None else event


class DashboardEngine:
    def __init__(
        self,
        service: EmbedService,
        client: Optional[DashboardApiClient] = None,
        *,
        settings: Optional[DashboardSettings] = None,
        random_source: Optional[RandomSource] = None,
        bridge: Optional[PersistenceBridge] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.service = service
        self.client = client
        if bridge is None and client is not None:
            bridge = PersistenceBridge(client, self.settings.save_quiet_period)
        self.bridge = bridge

        self.state = SharedFilterState()
        self.registry = WidgetRegistry()
        self.reports: List[Report] = []
        self.order = OrderManager(on_change=self._order_changed)
        self.readiness = ReadinessTracker(self.order, self.registry)
        self.interpreter = SelectionInterpreter(self.state, self.lookup, random_source)
        self.propagator = FilterPropagator(self.registry, self.state, self.lookup)

        self._embed_data: Optional[EmbedData] = None
        self._containers: Dict[WidgetId, Any] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._snapshot = self._build_snapshot()

    # --- read accessors ---

    def lookup(self, widget_id: WidgetId) -> Optional[WidgetSpec]:
        return resolve_spec(widget_id, self.reports)

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self._snapshot

    @property
    def embed_data(self) -> Optional[EmbedData]:
        return self._embed_data

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def save_error(self) -> Optional[str]:
        return self.bridge.save_error if self.bridge else None

    def is_ready(self) -> bool:
        return self.readiness.is_ready()

    def subscribe_ready(self, fn: Callable[[bool], None]) -> Callable[[], None]:
        return self.readiness.subscribe(fn)

    # --- mount / prerequisites ---

    async def mount(self) -> None:
        """Restore the saved layout (or the default one) and embed what can be embedded."""
        layout = None
        if self.client is not None:
            try:
                layout = await self.client.fetch_layout()
            except (DashboardError, httpx.HTTPError, ValueError) as exc:
                logger.error("Loading saved dashboard layout failed, using default: %s", exc)
        if self._closed:
            return

        if layout is not None:
            seen: Set[str] = set()
            for report in layout.reports:
                if str(report.id) not in seen:
                    seen.add(str(report.id))
                    self.reports.append(report)
            ids = list(layout.visual_order)
            ids.extend(r.widget_id for r in self.reports if r.widget_id not in ids)
            self.order.load(ids, known=lambda widget_id: self.lookup(widget_id) is not None)
            logger.info("Restored dashboard layout with %d visuals", len(self.order))
        else:
            self.order.mark_loaded()
        self._refresh()
        self.embed_pending()

    async def load_embed_data(self) -> Optional[EmbedData]:
        if self.client is None:
            return None
        try:
            data = await self.client.fetch_embed_data()
        except (DashboardError, httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching embed token: %s", exc)
            return None
        self.set_embed_data(data)
        return data

    def set_embed_data(self, data: EmbedData) -> None:
        if self._closed:
            return
        if self._embed_data is None:
            logger.info("Embed data ready for report %s", data.report_id)
        self._embed_data = data
        self.embed_pending()
        self._refresh()

    def attach_container(self, widget_id: WidgetId, container: Any) -> None:
        if self._closed:
            return
        self._containers.setdefault(widget_id, container)
        self.embed_pending()

    # --- embedding ---

    def embed_pending(self) -> List[WidgetId]:
        embedded = [widget_id for widget_id in self.order if self._ensure_embedded(widget_id)]
        if embedded:
            self._refresh()
        return embedded

    def _ensure_embedded(self, widget_id: WidgetId) -> bool:
        if self._closed or widget_id in self.registry:
            return False
        container = self._containers.get(widget_id)
        if self._embed_data is None or container is None:
            return False
        spec = self.lookup(widget_id)
        if spec is None or not spec.embeddable:
            logger.warning("No embed configuration for visual %s; skipping embed", widget_id)
            return False

        logger.info("Embedding visual %s (%s)", widget_id, spec.title)
        try:
            handle = self.service.embed(container, visual_config(spec, self._embed_data))
        except Exception:
            logger.exception("Error initiating embed for visual %s", widget_id)
            return False
        if not self.registry.register(widget_id, handle):
            return False
        self._bind_events(widget_id, handle)
        self.registry.mark_embedded(widget_id)
        return True

    def _bind_events(self, widget_id: WidgetId, handle: EmbedHandle) -> None:
        handle.on(LOADED, lambda event=None: self._on_loaded(widget_id, handle))
        handle.on(RENDERED, lambda event=None: self._on_rendered(widget_id, handle))
        handle.on(ERROR, lambda event=None: self._on_error(widget_id, handle, event))

    def _stale(self, widget_id: WidgetId, handle: EmbedHandle) -> bool:
        return self._closed or self.registry.get(widget_id) is not handle

    def _on_loaded(self, widget_id: WidgetId, handle: EmbedHandle) -> None:
        if self._stale(widget_id, handle):
            return
        logger.info("Visual loaded: %s", widget_id)
        # A handle can report loaded again after a reload; one listener per handle.
        if not self.registry.mark_selection_bound(widget_id):
            return
        handle.on(DATA_SELECTED, lambda event=None: self._on_data_selected(widget_id, handle, event))

    def _on_rendered(self, widget_id: WidgetId, handle: EmbedHandle) -> None:
        if self._stale(widget_id, handle):
            return
        if self.registry.mark_rendered(widget_id):
            logger.info("Visual rendered: %s", widget_id)
            self._refresh()

    def _on_error(self, widget_id: WidgetId, handle: EmbedHandle, event: Any) -> None:
        if self._stale(widget_id, handle):
            return
        logger.error("Visual embed error (%s): %s", widget_id, event_detail(event))

    def _on_data_selected(self, widget_id: WidgetId, handle: EmbedHandle, event: Any) -> None:
        if self._stale(widget_id, handle):
            return
        detail = event_detail(event)
        if has_data_points(detail):
            self._spawn(self.handle_selection(widget_id, detail))
        else:
            self._spawn(self.handle_selection_cleared(widget_id))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._closed:
            coro.close()
            return
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait until every event-triggered operation has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- filtering ---

    async def handle_selection(self, source_id: WidgetId, event: Any) -> Optional[FanOutResult]:
        if self._closed:
            return None
        descriptor = self.interpreter.interpret(source_id, event)
        if descriptor is None:
            return None
        self._refresh()
        result = await self.propagator.propagate_single(source_id, descriptor)
        self._refresh()
        return result

    async def handle_selection_cleared(self, source_id: WidgetId) -> Optional[FanOutResult]:
        if self._closed:
            return None
        logger.info("Clearing cross-filters triggered by %s", source_id)
        result = await self.propagator.clear_from_source(source_id)
        self._refresh()
        return result

    async def apply_shared_state(self) -> FanOutResult:
        result = await self.propagator.apply_shared_state()
        self._refresh()
        return result

    async def _set_slot(self, slot: str, value: str) -> Optional[FanOutResult]:
        if self._closed:
            return None
        if not self.state.set(slot, value):
            logger.warning("Ignoring unknown %s filter value %r", slot, value)
            return None
        self._refresh()
        return await self.apply_shared_state()

    async def set_category(self, value: str) -> Optional[FanOutResult]:
        return await self._set_slot(CATEGORY, value)

    async def set_segment(self, value: str) -> Optional[FanOutResult]:
        return await self._set_slot(SEGMENT, value)

    async def reset_all_filters(self) -> FanOutResult:
        result = await self.propagator.clear_all()
        self._refresh()
        return result

    # --- order & membership ---

    def reorder(self, active_id: object, over_id: object) -> bool:
        if self._closed:
            return False
        return self.order.reorder(active_id, over_id)

    def add_reports(self, reports: Iterable[Report]) -> List[WidgetId]:
        if self._closed:
            return []
        known = {str(report.id) for report in self.reports}
        unique: List[Report] = []
        for report in reports:
            if str(report.id) in known:
                continue
            known.add(str(report.id))
            unique.append(report)
        if not unique:
            logger.info("No new unique reports selected")
            return []
        logger.info("Adding %d new reports", len(unique))
        self.reports.extend(unique)
        added = self.order.append([report.widget_id for report in unique])
        self.embed_pending()
        return added

    def remove_widget(self, widget_id: object) -> Optional[WidgetId]:
        """Drop a user-added visual from the grid and release its embed handle."""
        if self._closed:
            return None
        existing = self.order.find(widget_id)
        if existing is None or isinstance(existing, StaticWidgetId):
            return None
        self.reports = [report for report in self.reports if report.widget_id != existing]
        self.order.remove(existing)
        self.registry.remove(existing)
        container = self._containers.pop(existing, None)
        if container is not None:
            try:
                self.service.reset(container)
            except Exception:
                logger.exception("Error resetting container for visual %s", existing)
        self._refresh()
        return existing

    def _order_changed(self, order: List[WidgetId]) -> None:
        if self.bridge is not None:
            self.bridge.schedule_save(order, self.reports)
        self._refresh()

    # --- derived state ---

    def _build_snapshot(self) -> DashboardSnapshot:
        return build_snapshot(
            self.settings.page_name,
            self._embed_data.report_id if self._embed_data else None,
            self.state,
            self.order.order,
            self.registry,
            self.lookup,
        )

    def _refresh(self) -> None:
        if self._closed:
            return
        self.readiness.refresh()
        self._snapshot = self._build_snapshot()

    async def teardown(self, *, flush_save: bool = False) -> None:
        """Unmount: drop every handle and container; late results are discarded."""
        if self._closed:
            return
        if self.bridge is not None:
            if flush_save:
                await self.bridge.flush()
            else:
                self.bridge.cancel()
        self._closed = True
        self.registry.clear()
        self._containers.clear()
        logger.info("Dashboard engine torn down")
