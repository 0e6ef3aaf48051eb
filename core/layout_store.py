from __future__ import annotations

import hashlib
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from core.widgets import STATIC_BY_NAME, DynamicWidgetId, Report, parse_widget_id


logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["position", "id", "kind", "title"]


def user_id_for_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]


@dataclass
class DashboardCustomization:
    id: str
    user_id: str
    visual_order: List[str] = field(default_factory=list)
    selected_dynamic_reports: List[Dict[str, Any]] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "visualOrder": list(self.visual_order),
            "selectedDynamicReports": [dict(r) for r in self.selected_dynamic_reports],
            "lastUpdated": self.last_updated,
        }


def clean_visual_order(raw: Iterable[object]) -> List[str]:
    out: List[str] = []
    for value in raw:
        widget_id = parse_widget_id(value)
        if widget_id is None:
            logger.warning("Dropping unknown visual id %r from saved order", value)
            continue
        key = str(widget_id)
        if key not in out:
            out.append(key)
    return out


def clean_reports(raw: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    seen = set()
    for item in raw:
        report = Report.from_dict(item)
        if report is None or str(report.id) in seen:
            continue
        seen.add(str(report.id))
        out.append(report.to_dict())
    return out


class LayoutStore:
    """In-process store of per-user dashboard layouts."""

    def __init__(self) -> None:
        self._items: Dict[str, DashboardCustomization] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, user_id: str) -> Optional[DashboardCustomization]:
        with self._lock:
            return self._items.get(user_id)

    def put(self, user_id: str, visual_order: Iterable[object], reports: Iterable[Dict[str, Any]]) -> DashboardCustomization:
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            existing = self._items.get(user_id)
            item = DashboardCustomization(
                id=existing.id if existing else uuid.uuid4().hex,
                user_id=user_id,
                visual_order=clean_visual_order(visual_order),
                selected_dynamic_reports=clean_reports(reports),
                last_updated=now,
            )
            self._items[user_id] = item
        return item

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._items.pop(user_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


def layout_frame(item: DashboardCustomization) -> pd.DataFrame:
    titles = {str(Report.from_dict(r).widget_id): r.get("title", "") for r in item.selected_dynamic_reports}
    rows = []
    for position, key in enumerate(item.visual_order, start=1):
        widget_id = parse_widget_id(key)
        if isinstance(widget_id, DynamicWidgetId):
            rows.append({"position": position, "id": key, "kind": "dynamic", "title": titles.get(key, "")})
        else:
            spec = STATIC_BY_NAME.get(key)
            rows.append({"position": position, "id": key, "kind": "static", "title": spec.title if spec else ""})
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)
