"""Map raw selected values onto the canonical category vocabulary.

Some visuals are bound to a product table whose labels do not line up with
the store categories the other visuals filter on. Known legacy labels are
mapped through ``ALIASES``; labels that have no single counterpart are
resolved to a random member of ``FALLBACK_VALUES`` so the resulting filter
never dead-ends on an empty result set.
"""

from __future__ import annotations

import random
from typing import Dict, FrozenSet, Optional, Protocol, Sequence, Tuple, TypeVar


T = TypeVar("T")

ALIASES: Dict[str, str] = {
    "Pirum": "Leo",
    "OneNote": "Fama",
    "Publisher": "Abbas",
    "SharePoint": "Barba",
    "Kaizala": "Leo",
    "PowerApps": "Palma",
    "Access": "Aliqui",
    "Word": "Contoso",
    "Exchange": "Leo",
    "Planner": "Fama",
}

AMBIGUOUS_VALUES: FrozenSet[str] = frozenset(
    {"Stream", "Power BI", "PowerPoint", "Teams", "Visio", "Outlook", "Excel", "Skype", "Forms"}
)

FALLBACK_VALUES: Tuple[str, ...] = ("Barba", "Contoso", "Fama", "Leo", "Natura", "Palma", "Pomum")


class RandomSource(Protocol):
    def pick(self, options: Sequence[T]) -> T: ...


class SystemRandomSource:
    """Uniform pick backed by :mod:`random`; pass ``seed`` for a reproducible sequence."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def pick(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("cannot pick from an empty sequence")
        return options[self._rng.randrange(len(options))]


_default_source = SystemRandomSource()


def pick_fallback(random_source: Optional[RandomSource] = None) -> str:
    return (random_source or _default_source).pick(FALLBACK_VALUES)


def normalize(raw: str, random_source: Optional[RandomSource] = None) -> str:
    if raw in ALIASES:
        return ALIASES[raw]
    if raw in AMBIGUOUS_VALUES:
        return pick_fallback(random_source)
    return raw
