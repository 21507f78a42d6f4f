"""Undo Manager - One-slot restore window for deleted items.

State machine:

    Idle --mark_deleted--> Pending(item, expires_at)
    Pending --undo--> Idle       (item handed back)
    Pending --expiry--> Idle     (item discarded for good)
    Pending --mark_deleted--> Pending(new item)   (old item discarded)

Only one item is ever pending: the newest delete wins. Expiry runs on a
threading.Timer. undo() and the expiry handler share one lock and compare
the pending entry by identity, so a given entry is claimed at most once.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default restore window
DEFAULT_UNDO_TIMEOUT_MS = 5000


@dataclass(eq=False)
class _PendingDelete(Generic[T]):
    """A pending item and its expiry timer."""

    item: T
    expires_at: float  # time.monotonic() deadline
    timer: threading.Timer


class UndoManager(Generic[T]):
    """Holds at most one recently deleted item for a bounded time."""

    def __init__(self, timeout_ms: int = DEFAULT_UNDO_TIMEOUT_MS) -> None:
        """Initialize the undo manager.

        Args:
            timeout_ms: Restore window in milliseconds.
        """
        self._timeout = max(0, timeout_ms) / 1000.0
        self._pending: _PendingDelete[T] | None = None
        self._lock = threading.Lock()

    @property
    def timeout_ms(self) -> int:
        """Restore window in milliseconds."""
        return int(self._timeout * 1000)

    @property
    def is_pending(self) -> bool:
        """True while an item can be restored."""
        return self._pending is not None

    @property
    def pending(self) -> T | None:
        """The restorable item, without claiming it."""
        entry = self._pending
        return entry.item if entry else None

    def remaining_ms(self) -> int:
        """Milliseconds left in the window (0 when idle)."""
        entry = self._pending
        if entry is None:
            return 0
        return max(0, int((entry.expires_at - time.monotonic()) * 1000))

    def mark_deleted(self, item: T) -> None:
        """Hold an item for restore, replacing any pending one.

        Args:
            item: The deleted item.
        """
        with self._lock:
            if self._pending is not None:
                self._pending.timer.cancel()
                logger.debug("Undo slot superseded; previous item discarded")

            timer = threading.Timer(self._timeout, self._expire)
            timer.daemon = True
            entry = _PendingDelete(
                item=item,
                expires_at=time.monotonic() + self._timeout,
                timer=timer,
            )
            timer.args = (entry,)
            self._pending = entry
            timer.start()

        logger.debug("Undo available for %.1fs", self._timeout)

    def undo(self) -> T | None:
        """Claim the pending item.

        Returns:
            The pending item, or None if idle or expired.
        """
        with self._lock:
            entry = self._pending
            if entry is None:
                return None
            entry.timer.cancel()
            self._pending = None
            if time.monotonic() >= entry.expires_at:
                # Window closed but the timer has not run yet
                logger.debug("Undo window expired")
                return None

        logger.info("Undo: item restored from slot")
        return entry.item

    def clear(self) -> None:
        """Discard the pending item without restoring it."""
        with self._lock:
            if self._pending is not None:
                self._pending.timer.cancel()
                self._pending = None
                logger.debug("Undo slot cleared")

    def _expire(self, entry: _PendingDelete[T]) -> None:
        """Timer callback. Only clears the slot if it still holds entry."""
        with self._lock:
            if self._pending is not entry:
                return
            self._pending = None
        logger.debug("Undo window expired")
