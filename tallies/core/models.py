"""Counter data model.

A Counter is a named tally with a non-negative count, an optional goal and
an append-only history of increment/decrement events. Serialized form uses
the field names of the persisted/exported JSON (``createdAt``), in a fixed
order: id, name, count, target, color, history, createdAt.
"""

import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tallies.core.colors import DEFAULT_COLOR


class HistoryAction(str, Enum):
    """Kind of history event."""

    INCREMENT = "increment"
    DECREMENT = "decrement"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def new_counter_id() -> str:
    """Generate a unique counter id (distinct even within one millisecond)."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class HistoryEntry:
    """One increment or decrement event."""

    timestamp: int  # epoch ms
    action: HistoryAction
    amount: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "timestamp": self.timestamp,
            "action": self.action.value,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Build from a dict.

        Raises:
            ValueError: If timestamp or action is missing or invalid.
            KeyError: If a required key is missing.
        """
        timestamp = data["timestamp"]
        if not _is_finite_number(timestamp):
            raise ValueError(f"Invalid history timestamp: {timestamp!r}")

        amount = data.get("amount", 1)
        if not _is_finite_number(amount) or amount < 1:
            amount = 1

        return cls(
            timestamp=int(timestamp),
            action=HistoryAction(data["action"]),
            amount=int(amount),
        )


@dataclass
class Counter:
    """A named tally."""

    id: str
    name: str
    count: int = 0
    target: int | None = None
    color: str = DEFAULT_COLOR
    history: list[HistoryEntry] = field(default_factory=list)
    created_at: int | None = None

    @classmethod
    def create(
        cls,
        name: str,
        target: int | None = None,
        color: str | None = None,
    ) -> "Counter":
        """Create a fresh counter with a new id, zero count and no history."""
        return cls(
            id=new_counter_id(),
            name=name,
            target=target if target else None,
            color=color or DEFAULT_COLOR,
            created_at=now_ms(),
        )

    @property
    def has_target(self) -> bool:
        """True when a positive goal is set."""
        return self.target is not None and self.target > 0

    @property
    def goal_reached(self) -> bool:
        """True when a goal is set and the count has reached it."""
        return self.has_target and self.count >= self.target

    @property
    def progress(self) -> float | None:
        """Progress toward the goal in 0.0-1.0, or None without a goal."""
        if not self.has_target:
            return None
        return min(self.count / self.target, 1.0)

    @property
    def last_activity(self) -> int | None:
        """Timestamp of the newest history entry."""
        return self.history[-1].timestamp if self.history else None

    def copy(self) -> "Counter":
        """Independent snapshot (history entries are immutable and shared)."""
        return Counter(
            id=self.id,
            name=self.name,
            count=self.count,
            target=self.target,
            color=self.color,
            history=list(self.history),
            created_at=self.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict in the stable field order."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "count": self.count,
        }
        if self.target is not None:
            data["target"] = self.target
        data["color"] = self.color
        data["history"] = [entry.to_dict() for entry in self.history]
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Counter":
        """Build from persisted data.

        Strict: used for the app's own store, not for untrusted imports
        (see tallies.core.transfer.validate for those).

        Raises:
            KeyError: If id or name is missing.
            ValueError: If a field has the wrong type.
        """
        count = data.get("count", 0)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"Invalid count: {count!r}")

        target = data.get("target")
        if target is not None and (isinstance(target, bool) or not isinstance(target, int)):
            raise ValueError(f"Invalid target: {target!r}")

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            count=count,
            target=target,
            color=data.get("color") or DEFAULT_COLOR,
            history=[HistoryEntry.from_dict(h) for h in data.get("history", [])],
            created_at=data.get("createdAt"),
        )
