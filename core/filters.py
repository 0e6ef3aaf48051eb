from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple


ALL = "All"
INVALID_TABLE = "_invalid_"
BASIC_FILTER_SCHEMA = "http://powerbi.com/product/schema#basic"
BASIC_FILTER_TYPE = 1

CATEGORY = "category"
SEGMENT = "segment"
SLOTS: Tuple[str, ...] = (CATEGORY, SEGMENT)

CATEGORY_OPTIONS: Tuple[str, ...] = (
    "Abbas",
    "Aliqui",
    "Barba",
    "Contoso",
    "Fama",
    "Leo",
    "Natura",
    "Palma",
    "Pirum",
    "Pomum",
)
SEGMENT_OPTIONS: Tuple[str, ...] = (
    "Blue",
    "Cyan",
    "Green",
    "Jade",
    "Magenta",
    "Neon Blue",
    "Orange",
    "Purple",
    "Red",
    "Royal Blue",
    "Turquoise",
    "Yellow",
)
SLOT_OPTIONS: Dict[str, Tuple[str, ...]] = {CATEGORY: CATEGORY_OPTIONS, SEGMENT: SEGMENT_OPTIONS}

# Target that a concrete slot value is applied to when shared state is pushed out.
SLOT_TARGETS: Dict[str, Tuple[str, str]] = {
    CATEGORY: ("Store", "Store"),
    SEGMENT: ("Product", "Segment"),
}

# Which slot a selection on (table, column) updates.
SLOT_TABLE: Dict[Tuple[str, str], str] = {
    ("Store", "Store"): CATEGORY,
    ("Product", "Product"): CATEGORY,
    ("Product", "Segment"): SEGMENT,
}


def slot_for(table: str, column: str) -> Optional[str]:
    return SLOT_TABLE.get((table, column))


@dataclass(frozen=True)
class FilterDescriptor:
    table: str
    column: str
    value: str

    def is_valid(self) -> bool:
        if not self.table or not self.column or self.table == INVALID_TABLE:
            return False
        return self.value is not None and self.value != ""

    def to_basic_filter(self) -> Dict[str, Any]:
        """Wire form accepted by ``handle.set_filters``."""
        return {
            "$schema": BASIC_FILTER_SCHEMA,
            "target": {"table": self.table, "column": self.column},
            "operator": "In",
            "values": [self.value],
            "filterType": BASIC_FILTER_TYPE,
        }

    def to_dict(self) -> Dict[str, str]:
        return {"table": self.table, "column": self.column, "value": self.value}


def make_descriptor(table: object, column: object, value: object) -> Optional[FilterDescriptor]:
    if not table or not column or value is None:
        return None
    descriptor = FilterDescriptor(table=str(table), column=str(column), value=str(value))
    return descriptor if descriptor.is_valid() else None


def is_valid_slot_value(slot: str, value: object) -> bool:
    return value == ALL or value in SLOT_OPTIONS.get(slot, ())


@dataclass
class SharedFilterState:
    category: str = ALL
    segment: str = ALL

    def get(self, slot: str) -> str:
        if slot not in SLOTS:
            raise KeyError(slot)
        return getattr(self, slot)

    def set(self, slot: str, value: str) -> bool:
        """Write ``value`` into ``slot``; values outside the slot's vocabulary are rejected."""
        if slot not in SLOTS:
            raise KeyError(slot)
        if not is_valid_slot_value(slot, value):
            return False
        setattr(self, slot, value)
        return True

    def reset(self, slots: Iterable[str]) -> List[str]:
        changed = []
        for slot in slots:
            if self.get(slot) != ALL:
                setattr(self, slot, ALL)
                changed.append(slot)
        return changed

    def reset_all(self) -> None:
        self.category = ALL
        self.segment = ALL

    def concrete_slots(self) -> List[str]:
        return [slot for slot in SLOTS if self.get(slot) != ALL]

    def has_concrete(self) -> bool:
        return bool(self.concrete_slots())

    def descriptors(self) -> List[FilterDescriptor]:
        """Zero, one or two descriptors for the slots that are not ``All``."""
        out: List[FilterDescriptor] = []
        for slot in self.concrete_slots():
            table, column = SLOT_TARGETS[slot]
            out.append(FilterDescriptor(table=table, column=column, value=self.get(slot)))
        return out

    def as_filter_list(self) -> List[FilterDescriptor]:
        """Both slots, including ones at ``All``."""
        return [
            FilterDescriptor(table=SLOT_TARGETS[slot][0], column=SLOT_TARGETS[slot][1], value=self.get(slot))
            for slot in SLOTS
        ]


def normalize_filters(raw: Optional[dict]) -> SharedFilterState:
    """Build a shared state from loosely-typed input; unknown values fall back to ``All``."""
    raw = raw or {}
    state = SharedFilterState()
    for slot in SLOTS:
        value = raw.get(slot)
        if value is None:
            continue
        value = str(value).strip()
        if not state.set(slot, value):
            state.set(slot, ALL)
    return state
