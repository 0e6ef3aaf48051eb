from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from core.filters import FilterDescriptor, SharedFilterState
from core.registry import WidgetRegistry
from core.widgets import WidgetId, WidgetSpec


@dataclass(frozen=True)
class VisualInfo:
    id: str
    title: str
    type: str
    visible: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "type": self.type, "visible": self.visible}


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only view of the dashboard handed to other features."""

    page_name: str
    report_id: Optional[str] = None
    filters: Tuple[FilterDescriptor, ...] = field(default_factory=tuple)
    visuals: Tuple[VisualInfo, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageName": self.page_name,
            "reportId": self.report_id,
            "filters": [f.to_dict() for f in self.filters],
            "visuals": [v.to_dict() for v in self.visuals],
        }


def build_snapshot(
    page_name: str,
    report_id: Optional[str],
    state: SharedFilterState,
    order: Sequence[WidgetId],
    registry: WidgetRegistry,
    lookup: Callable[[WidgetId], Optional[WidgetSpec]],
) -> DashboardSnapshot:
    visuals = []
    for widget_id in order:
        spec = lookup(widget_id)
        if spec is None:
            continue
        visuals.append(
            VisualInfo(id=str(widget_id), title=spec.title, type=spec.kind, visible=widget_id in registry)
        )
    return DashboardSnapshot(
        page_name=page_name,
        report_id=report_id,
        filters=tuple(state.as_filter_list()),
        visuals=tuple(visuals),
    )
