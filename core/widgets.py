from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from core.filters import SLOT_TABLE


STATIC = "static"
DYNAMIC = "dynamic"
DYNAMIC_PREFIX = "dynamic-"


@dataclass(frozen=True)
class StaticWidgetId:
    name: str
    kind: ClassVar[str] = STATIC

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DynamicWidgetId:
    report_id: str
    kind: ClassVar[str] = DYNAMIC

    def __str__(self) -> str:
        return f"{DYNAMIC_PREFIX}{self.report_id}"


WidgetId = Union[StaticWidgetId, DynamicWidgetId]


def dynamic_id(report_id: object) -> DynamicWidgetId:
    # Report ids arrive as ints from the catalog and as strings from storage.
    return DynamicWidgetId(report_id=str(report_id))


@dataclass(frozen=True)
class Report:
    id: Union[int, str]
    title: str
    description: str = ""
    category: str = ""
    type: str = "report"

    @property
    def widget_id(self) -> DynamicWidgetId:
        return dynamic_id(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["Report"]:
        if not isinstance(raw, Mapping):
            return None
        report_id = raw.get("id")
        title = raw.get("title")
        if report_id is None or report_id == "" or not title:
            return None
        return cls(
            id=report_id,
            title=str(title),
            description=str(raw.get("description") or ""),
            category=str(raw.get("category") or ""),
            type=str(raw.get("type") or "report"),
        )


@dataclass(frozen=True)
class WidgetSpec:
    id: WidgetId
    title: str
    page_name: Optional[str] = None
    visual_name: Optional[str] = None
    binding: FrozenSet[Tuple[str, str]] = field(default_factory=frozenset)
    always_random: bool = False
    report: Optional[Report] = None

    @property
    def kind(self) -> str:
        return self.id.kind

    @property
    def owned_slots(self) -> FrozenSet[str]:
        return frozenset(SLOT_TABLE[pair] for pair in self.binding if pair in SLOT_TABLE)

    @property
    def embeddable(self) -> bool:
        return bool(self.page_name and self.visual_name)


STATIC_WIDGETS: Tuple[WidgetSpec, ...] = (
    WidgetSpec(
        id=StaticWidgetId("categoryVisual"),
        title="Sales Analysis",
        page_name="ReportSectiona37d01e834c17d07bbeb",
        visual_name="b33397810d555ca70a8c",
        binding=frozenset({("Store", "Store"), ("Product", "Product")}),
    ),
    WidgetSpec(
        id=StaticWidgetId("storeVisual"),
        title="Sales by Segment",
        page_name="ReportSection998e2850a99cabad87e8",
        visual_name="3a28c5fee26bd29ff352",
        binding=frozenset({("Product", "Segment")}),
    ),
    WidgetSpec(
        id=StaticWidgetId("salesByStoreVisual"),
        title="Sales by Store",
        page_name="ReportSection4b3fbaa7dd7908d906d9",
        visual_name="d55aa7aa40745de10d55",
        binding=frozenset({("Store", "Store")}),
    ),
    WidgetSpec(
        id=StaticWidgetId("salesBySegmentVisual"),
        title="Forecast Analysis",
        page_name="ReportSectiona37d01e834c17d07bbeb",
        visual_name="805719ca6000cb000be2",
        binding=frozenset({("Product", "Segment")}),
        always_random=True,
    ),
)
STATIC_BY_NAME: Dict[str, WidgetSpec] = {str(spec.id): spec for spec in STATIC_WIDGETS}
DEFAULT_ORDER: Tuple[WidgetId, ...] = tuple(spec.id for spec in STATIC_WIDGETS)

# (page, visual) for each report that can be added from the catalog, keyed by title.
REPORT_VISUALS: Dict[str, Tuple[str, str]] = {
    "Category Breakdown": ("ReportSection998e2850a99cabad87e8", "3a28c5fee26bd29ff352"),
    "Store Breakdown": ("ReportSection998e2850a99cabad87e8", "d55aa7aa40745de10d55"),
    "Revenue Trends": ("ReportSection4b3fbaa7dd7908d906d9", "3a28c5fee26bd29ff352"),
}

REPORT_CATALOG: Tuple[Report, ...] = (
    Report(id=1, title="Category Breakdown", description="Key breakdown of category metrics", category="Category", type="report"),
    Report(id=2, title="Revenue Trends", description="Monthly revenue analysis", category="Finance", type="chart"),
    Report(id=3, title="Store Breakdown", description="Key breakdown of store metrics", category="Store", type="kpi"),
)


def parse_widget_id(raw: object) -> Optional[WidgetId]:
    """Turn a stored id string back into a tagged id; unknown strings give ``None``."""
    if isinstance(raw, (StaticWidgetId, DynamicWidgetId)):
        return raw
    if raw is None:
        return None
    text = str(raw).strip()
    if text in STATIC_BY_NAME:
        return STATIC_BY_NAME[text].id
    if text.startswith(DYNAMIC_PREFIX) and len(text) > len(DYNAMIC_PREFIX):
        return DynamicWidgetId(report_id=text[len(DYNAMIC_PREFIX):])
    return None


def dynamic_spec(report: Report) -> WidgetSpec:
    page_name, visual_name = REPORT_VISUALS.get(report.title, (None, None))
    return WidgetSpec(
        id=report.widget_id,
        title=report.title,
        page_name=page_name,
        visual_name=visual_name,
        report=report,
    )


def resolve_spec(widget_id: WidgetId, reports: List[Report]) -> Optional[WidgetSpec]:
    if isinstance(widget_id, StaticWidgetId):
        return STATIC_BY_NAME.get(widget_id.name)
    for report in reports:
        if report.widget_id == widget_id:
            return dynamic_spec(report)
    return None
