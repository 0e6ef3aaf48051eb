from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import httpx

from core.config import DashboardSettings
from core.debounce import Debouncer
from core.embedding import EmbedData
from core.errors import DashboardError, EmbedDataError, LayoutApiError, NotAuthenticatedError
from core.widgets import Report, WidgetId, parse_widget_id


logger = logging.getLogger(__name__)

LAYOUT_PATH = "/user/dashboard"


@dataclass
class StoredLayout:
    visual_order: List[WidgetId] = field(default_factory=list)
    reports: List[Report] = field(default_factory=list)


def layout_from_payload(payload: Optional[Dict[str, Any]]) -> Optional[StoredLayout]:
    """Parse a ``{visualOrder, selectedDynamicReports}`` body; unknown entries are dropped."""
    if not payload or not isinstance(payload, Mapping):
        return None
    order: List[WidgetId] = []
    for raw in _list_field(payload, "visualOrder"):
        widget_id = parse_widget_id(raw)
        if widget_id is None:
            logger.warning("Dropping unknown visual id from stored layout: %r", raw)
            continue
        order.append(widget_id)
    reports = [r for r in (Report.from_dict(raw) for raw in _list_field(payload, "selectedDynamicReports")) if r]
    return StoredLayout(visual_order=order, reports=reports)


def _list_field(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        logger.warning("Ignoring stored layout field %s: expected a list, got %s", key, type(value).__name__)
        return []
    return list(value)


def layout_to_payload(order: Sequence[WidgetId], reports: Sequence[Report]) -> Dict[str, Any]:
    return {
        "visualOrder": [str(widget_id) for widget_id in order],
        "selectedDynamicReports": [report.to_dict() for report in reports],
    }


class DashboardApiClient:
    """Async client for the layout API and the embed token endpoint."""

    def __init__(
        self,
        settings: DashboardSettings,
        token_provider: Callable[[], Optional[str]],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(timeout=settings.request_timeout, transport=transport)

    def _auth_headers(self) -> Dict[str, str]:
        token = self._token_provider()
        if not token:
            logger.error("Attempted API call without auth token")
            raise NotAuthenticatedError("User not authenticated")
        return {"Authorization": f"Bearer {token}"}

    @property
    def layout_url(self) -> str:
        return f"{self.settings.api_base_url}{LAYOUT_PATH}"

    async def fetch_layout(self) -> Optional[StoredLayout]:
        """Return the stored layout, or ``None`` when the user has not saved one yet."""
        response = await self._client.get(self.layout_url, headers=self._auth_headers())
        if response.status_code == 404:
            return None
        if response.is_error:
            raise LayoutApiError(
                f"Failed to fetch dashboard config: {response.reason_phrase}", status_code=response.status_code
            )
        return layout_from_payload(response.json())

    async def save_layout(self, order: Sequence[WidgetId], reports: Sequence[Report]) -> Dict[str, Any]:
        headers = self._auth_headers()
        response = await self._client.put(self.layout_url, headers=headers, json=layout_to_payload(order, reports))
        if response.is_error:
            raise LayoutApiError(
                f"Failed to save dashboard config: {response.reason_phrase}", status_code=response.status_code
            )
        # Status decides success; the echoed body is optional.
        try:
            body = response.json()
        except ValueError:
            logger.warning("Dashboard config saved but the response body is not JSON")
            return {}
        return body if isinstance(body, dict) else {}

    async def fetch_embed_data(self) -> EmbedData:
        response = await self._client.get(self.settings.embed_token_url)
        if response.is_error:
            raise EmbedDataError(f"HTTP error! Status: {response.status_code}")
        data = EmbedData.from_payload(response.json())
        if data is None:
            raise EmbedDataError("Missing token, embedUrl, or reportId in the API response")
        return data

    async def aclose(self) -> None:
        await self._client.aclose()


class PersistenceBridge:
    """Debounced, best-effort saves of the visual order and added reports.

    A failed save sets :attr:`save_error` for the UI; the in-memory layout is
    never rolled back.
    """

    def __init__(self, client: DashboardApiClient, quiet_period: float = 1.0) -> None:
        self.client = client
        self.save_error: Optional[str] = None
        self.last_saved: Optional[Dict[str, Any]] = None
        self.save_count = 0
        self._debouncer = Debouncer(quiet_period, self._save)

    @property
    def save_failed(self) -> bool:
        return self.save_error is not None

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def schedule_save(self, order: Sequence[WidgetId], reports: Sequence[Report]) -> None:
        # Copy now: the caller keeps mutating its lists.
        self._debouncer(list(order), list(reports))

    async def _save(self, order: List[WidgetId], reports: List[Report]) -> None:
        self.save_count += 1
        try:
            result = await self.client.save_layout(order, reports)
        except (DashboardError, httpx.HTTPError, ValueError) as exc:
            logger.error("Saving dashboard layout failed: %s", exc)
            self.save_error = str(exc) or type(exc).__name__
            return
        self.save_error = None
        self.last_saved = result
        logger.info("Dashboard layout saved (%d visuals)", len(order))

    async def flush(self) -> None:
        await self._debouncer.flush()
        await self._debouncer.wait()

    async def wait(self) -> None:
        await self._debouncer.wait()

    def cancel(self) -> None:
        self._debouncer.cancel()
