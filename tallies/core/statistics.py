"""Statistics - Summary facts derived from a counter collection.

Pure functions of a snapshot: nothing is cached, nothing is mutated.
Collections are small, so everything is recomputed on each call.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from tallies.core.models import Counter


@dataclass(frozen=True)
class CounterStatistics:
    """Aggregates over a counter collection."""

    total_counters: int = 0
    total_count: int = 0
    total_actions: int = 0
    completed_goals: int = 0
    most_active: Counter | None = None
    highest_count: Counter | None = None
    today_actions: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the API. Leaders are summarized, not dumped."""
        return {
            "totalCounters": self.total_counters,
            "totalCount": self.total_count,
            "totalActions": self.total_actions,
            "completedGoals": self.completed_goals,
            "mostActive": _leader(self.most_active, "actions", len(self.most_active.history))
            if self.most_active
            else None,
            "highestCount": _leader(self.highest_count, "count", self.highest_count.count)
            if self.highest_count
            else None,
            "todayActions": self.today_actions,
        }


def _leader(counter: Counter, metric: str, value: int) -> dict[str, Any]:
    return {"id": counter.id, "name": counter.name, "color": counter.color, metric: value}


def start_of_day_ms(now: datetime | None = None) -> int:
    """Local midnight of now (or the current time) as epoch milliseconds."""
    now = now or datetime.now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def _first_max(counters: list[Counter], key) -> Counter | None:
    """argmax that keeps the earliest counter on ties."""
    best: Counter | None = None
    best_value = None
    for counter in counters:
        value = key(counter)
        if best is None or value > best_value:
            best, best_value = counter, value
    return best


def compute_statistics(
    counters: list[Counter],
    now: datetime | None = None,
) -> CounterStatistics:
    """Compute summary statistics.

    Args:
        counters: Collection snapshot in display order.
        now: Moment of computation (default: current local time). Only
            used to find today's midnight.

    Returns:
        CounterStatistics; all zeros and no leaders for an empty collection.
    """
    if not counters:
        return CounterStatistics()

    midnight = start_of_day_ms(now)

    return CounterStatistics(
        total_counters=len(counters),
        total_count=sum(c.count for c in counters),
        total_actions=sum(len(c.history) for c in counters),
        completed_goals=sum(1 for c in counters if c.goal_reached),
        most_active=_first_max(counters, lambda c: len(c.history)),
        highest_count=_first_max(counters, lambda c: c.count),
        today_actions=sum(
            1 for c in counters for entry in c.history if entry.timestamp >= midnight
        ),
    )
