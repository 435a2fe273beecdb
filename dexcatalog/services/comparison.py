"""
Comparison selection.

Holds at most two resolved species for side-by-side comparison. Adding a
third evicts the oldest. Toggling a selected species removes it.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

from dexcatalog.config import COMPARISON_CAPACITY
from dexcatalog.models.species import ItemDetail

logger = logging.getLogger(__name__)

Leader = Literal["first", "second", "tie"]


class ComparisonSelector:
    """Ordered, bounded selection of detail records, oldest first."""

    def __init__(self, capacity: int = COMPARISON_CAPACITY) -> None:
        self.capacity = capacity
        self._selected: list[ItemDetail] = []

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, identifier: object) -> bool:
        return any(item.identifier == identifier for item in self._selected)

    def current(self) -> list[ItemDetail]:
        return list(self._selected)

    def is_ready(self) -> bool:
        """True when exactly `capacity` items are selected."""
        return len(self._selected) == self.capacity

    def toggle(self, item: ItemDetail) -> bool:
        """
        Select or deselect an item.

        Returns:
            True if the item is selected afterwards
        """
        if item.identifier in self:
            self.evict(item.identifier)
            return False

        if len(self._selected) >= self.capacity:
            dropped = self._selected.pop(0)
            logger.debug("Comparison full, dropping %s", dropped.identifier)

        self._selected.append(item)
        return True

    def evict(self, identifier: str) -> bool:
        """
        Remove an item by identifier.

        Returns:
            True if something was removed
        """
        before = len(self._selected)
        self._selected = [item for item in self._selected if item.identifier != identifier]
        return len(self._selected) != before

    def clear(self) -> None:
        self._selected.clear()


@dataclass
class StatLine:
    """One stat of a two-way comparison."""

    stat: str
    first: int | None
    second: int | None
    leader: Leader


@dataclass
class ComparisonSummary:
    """Stat-by-stat comparison of two species."""

    first: str
    second: str
    lines: list[StatLine] = field(default_factory=list)
    first_total: int = 0
    second_total: int = 0

    @property
    def total_leader(self) -> Leader:
        return _leader(self.first_total, self.second_total)


def _leader(a: int | None, b: int | None) -> Leader:
    a_value = a if a is not None else -1
    b_value = b if b is not None else -1
    if a_value > b_value:
        return "first"
    if b_value > a_value:
        return "second"
    return "tie"


def compare_stats(first: ItemDetail, second: ItemDetail) -> ComparisonSummary:
    """
    Compare the base stats of two species.

    Stats are listed in the first species' order, followed by any stat only
    the second has. A missing stat counts as lower than any value.
    """
    names = list(first.stat_block)
    names.extend(name for name in second.stat_block if name not in first.stat_block)

    lines = []
    for name in names:
        a = first.stat_block.get(name)
        b = second.stat_block.get(name)
        lines.append(StatLine(stat=name, first=a, second=b, leader=_leader(a, b)))

    return ComparisonSummary(
        first=first.identifier,
        second=second.identifier,
        lines=lines,
        first_total=first.total_stats(),
        second_total=second.total_stats(),
    )
