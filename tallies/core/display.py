"""Display helpers - Search and transient sort for counter lists.

These return new lists. The repository's stored order (set by reorder) is
never touched.
"""

from tallies.core.models import Counter

# Sort keys accepted by sort_counters
SORT_KEYS = ("manual", "name", "count", "progress", "recent")


def filter_counters(counters: list[Counter], query: str | None) -> list[Counter]:
    """Keep counters whose name contains the query (case-insensitive).

    A blank query returns everything.
    """
    needle = (query or "").strip().casefold()
    if not needle:
        return list(counters)
    return [c for c in counters if needle in c.name.casefold()]


def sort_counters(counters: list[Counter], key: str = "manual") -> list[Counter]:
    """Sort counters for display.

    Args:
        counters: Counters in stored order.
        key: One of SORT_KEYS. "manual" keeps stored order; "count",
            "progress" and "recent" put the largest first. Ties keep
            stored order.

    Raises:
        ValueError: If key is unknown.
    """
    if key == "manual":
        return list(counters)
    if key == "name":
        return sorted(counters, key=lambda c: c.name.casefold())
    if key == "count":
        return sorted(counters, key=lambda c: c.count, reverse=True)
    if key == "progress":
        # Counters without a goal go last
        return sorted(
            counters,
            key=lambda c: c.progress if c.progress is not None else -1.0,
            reverse=True,
        )
    if key == "recent":
        return sorted(counters, key=lambda c: c.last_activity or 0, reverse=True)
    raise ValueError(f"Invalid sort key: {key}. Must be one of: {list(SORT_KEYS)}")
