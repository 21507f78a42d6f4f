"""Counter Repository - Single source of truth for the counter collection.

Owns the ordered in-memory list of counters, persists it to a key-value
store under "@counters" after every mutation, and notifies registered
callbacks of each change.

Storage failures never leave this module: a failed load yields an empty
collection, a failed save is logged and in-memory state stays ahead of the
persisted state until the next successful save.
"""

import json
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, Future
from enum import Enum

from tallies.core.models import Counter, HistoryAction, HistoryEntry, now_ms
from tallies.core.store import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

# Store key for the serialized collection
COUNTERS_KEY = "@counters"

# Fields update() may touch
UPDATABLE_FIELDS = frozenset({"name", "count", "target", "color", "history"})


class ChangeKind(str, Enum):
    """Kind of collection change passed to callbacks."""

    ADDED = "added"
    RESTORED = "restored"
    UPDATED = "updated"
    DELETED = "deleted"
    REORDERED = "reordered"
    RESET = "reset"
    REPLACED = "replaced"
    LOADED = "loaded"


ChangeCallback = Callable[[ChangeKind, list[str]], None]


def serialize_counters(counters: Iterable[Counter], indent: int | None = None) -> str:
    """Serialize counters to a JSON array string."""
    return json.dumps([c.to_dict() for c in counters], indent=indent, ensure_ascii=False)


class CounterRepository:
    """Manages the persistent counter collection.

    All mutations run under one lock and are applied in call order.
    Mutations referencing an unknown id are no-ops that return None.

    With an executor, saves are fire-and-forget: the collection is serialized
    at call time and the write is submitted to the executor. Use a
    single-worker executor so writes land in order.
    """

    def __init__(
        self,
        store: KeyValueStore,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            store: Key-value store to persist into.
            executor: Optional executor for asynchronous saves.
        """
        self._store = store
        self._executor = executor
        self._counters: list[Counter] = []
        self._lock = threading.RLock()
        self._callbacks: list[ChangeCallback] = []

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> list[Counter]:
        """Load the collection from the store.

        Returns:
            Loaded counters (empty if absent, unreadable or malformed).
        """
        counters: list[Counter] = []
        try:
            raw = self._store.get(COUNTERS_KEY)
            if raw is not None:
                data = json.loads(raw)
                if not isinstance(data, list):
                    raise ValueError("stored counters are not a list")
                counters = [Counter.from_dict(item) for item in data]
                logger.info("Loaded %d counters", len(counters))
        except StorageError as e:
            logger.warning("Failed to read counters: %s", e)
            counters = []
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Failed to parse stored counters: %s", e)
            counters = []

        with self._lock:
            self._counters = counters
            ids = [c.id for c in counters]
        self._notify(ChangeKind.LOADED, ids)
        return [c.copy() for c in counters]

    def save(self) -> None:
        """Persist the current collection."""
        # Serialize and hand off under the lock so writes keep call order
        with self._lock:
            payload = serialize_counters(self._counters)

            if self._executor is None:
                self._write(payload)
                return

            try:
                future = self._executor.submit(self._write, payload)
            except RuntimeError as e:
                # Executor already shut down
                logger.error("Failed to schedule counters save: %s", e)
                return
        future.add_done_callback(_save_error_handler)

    def _write(self, payload: str) -> None:
        """Write a serialized collection to the store."""
        try:
            self._store.set(COUNTERS_KEY, payload)
        except StorageError as e:
            logger.error("Failed to save counters: %s", e)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, counter_id: str) -> Counter | None:
        """Get a snapshot of one counter.

        Args:
            counter_id: Counter id.

        Returns:
            Counter copy, or None if not found.
        """
        with self._lock:
            counter = self._find(counter_id)
            return counter.copy() if counter else None

    def get_all(self) -> list[Counter]:
        """Get a snapshot of the collection in display order."""
        with self._lock:
            return [c.copy() for c in self._counters]

    def ids(self) -> list[str]:
        """Get all ids in display order."""
        with self._lock:
            return [c.id for c in self._counters]

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def __contains__(self, counter_id: object) -> bool:
        with self._lock:
            return any(c.id == counter_id for c in self._counters)

    def _find(self, counter_id: str) -> Counter | None:
        for counter in self._counters:
            if counter.id == counter_id:
                return counter
        return None

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(
        self,
        name: str,
        target: int | None = None,
        color: str | None = None,
    ) -> Counter:
        """Create a counter and append it to the collection.

        Args:
            name: Display name (already validated by the caller).
            target: Optional goal.
            color: Optional "#RRGGBB" color (default preset if None).

        Returns:
            The created counter.
        """
        counter = Counter.create(name, target=target, color=color)
        with self._lock:
            self._counters.append(counter)
            snapshot = counter.copy()
        self._commit(ChangeKind.ADDED, [counter.id])
        logger.info("Added counter '%s' (%s)", counter.name, counter.id)
        return snapshot

    def add_restored(self, counter: Counter) -> bool:
        """Re-insert an existing counter verbatim at the end.

        Used by undo and import. The id is kept as-is.

        Args:
            counter: Counter to restore.

        Returns:
            True if appended, False if its id is already present.
        """
        with self._lock:
            if self._find(counter.id) is not None:
                logger.warning(
                    "Not restoring counter '%s': id %s already exists",
                    counter.name,
                    counter.id,
                )
                return False
            self._counters.append(counter.copy())
        self._commit(ChangeKind.RESTORED, [counter.id])
        logger.info("Restored counter '%s' (%s)", counter.name, counter.id)
        return True

    def update(self, counter_id: str, **changes) -> Counter | None:
        """Merge field changes into a counter.

        Args:
            counter_id: Counter id.
            **changes: Any of name, count, target, color, history.

        Returns:
            Updated counter, or None if not found.

        Raises:
            ValueError: If changes include id or an unknown field.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            counter = self._find(counter_id)
            if counter is None:
                return None
            for key, value in changes.items():
                if key == "history":
                    value = list(value)
                setattr(counter, key, value)
            snapshot = counter.copy()
        self._commit(ChangeKind.UPDATED, [counter_id])
        logger.debug("Updated counter %s: %s", counter_id, sorted(changes))
        return snapshot

    def delete(self, counter_id: str) -> Counter | None:
        """Remove a counter.

        Args:
            counter_id: Counter id.

        Returns:
            The removed counter, or None if not found.
        """
        with self._lock:
            counter = self._find(counter_id)
            if counter is None:
                return None
            self._counters.remove(counter)
        self._commit(ChangeKind.DELETED, [counter_id])
        logger.info("Deleted counter '%s' (%s)", counter.name, counter_id)
        return counter.copy()

    def delete_many(self, ids: Iterable[str]) -> list[Counter]:
        """Remove several counters with a single save.

        Args:
            ids: Counter ids; unknown ids are ignored.

        Returns:
            Removed counters in their former display order.
        """
        wanted = set(ids)
        with self._lock:
            removed = [c for c in self._counters if c.id in wanted]
            if not removed:
                return []
            self._counters = [c for c in self._counters if c.id not in wanted]
        removed_ids = [c.id for c in removed]
        self._commit(ChangeKind.DELETED, removed_ids)
        logger.info("Deleted %d counters", len(removed))
        return [c.copy() for c in removed]

    def reorder(self, new_order: Sequence[Counter | str]) -> None:
        """Replace the display order.

        Args:
            new_order: Counters (or ids) in the new order. Must be a
                permutation of the current collection.

        Raises:
            ValueError: If new_order drops, adds or repeats an id.
        """
        order = [item.id if isinstance(item, Counter) else item for item in new_order]
        with self._lock:
            current = {c.id: c for c in self._counters}
            if len(order) != len(current) or set(order) != set(current):
                raise ValueError("New order must be a permutation of existing counters")
            self._counters = [current[counter_id] for counter_id in order]
        self._commit(ChangeKind.REORDERED, order)
        logger.debug("Reordered %d counters", len(order))

    def increment(self, counter_id: str, amount: int = 1) -> Counter | None:
        """Add to a counter and record it in history.

        Args:
            counter_id: Counter id.
            amount: Positive amount (validated by the caller).

        Returns:
            Updated counter, or None if not found.
        """
        with self._lock:
            counter = self._find(counter_id)
            if counter is None:
                return None
            counter.count += amount
            counter.history.append(
                HistoryEntry(timestamp=now_ms(), action=HistoryAction.INCREMENT, amount=amount)
            )
            snapshot = counter.copy()
        self._commit(ChangeKind.UPDATED, [counter_id])
        logger.debug("Counter '%s' +%d = %d", snapshot.name, amount, snapshot.count)
        return snapshot

    def decrement(self, counter_id: str, amount: int = 1) -> Counter | None:
        """Subtract from a counter, never going below zero.

        History records the requested amount, even when the count was
        clamped at zero.

        Args:
            counter_id: Counter id.
            amount: Positive amount (validated by the caller).

        Returns:
            Updated counter, or None if not found.
        """
        with self._lock:
            counter = self._find(counter_id)
            if counter is None:
                return None
            counter.count = max(0, counter.count - amount)
            counter.history.append(
                HistoryEntry(timestamp=now_ms(), action=HistoryAction.DECREMENT, amount=amount)
            )
            snapshot = counter.copy()
        self._commit(ChangeKind.UPDATED, [counter_id])
        logger.debug("Counter '%s' -%d = %d", snapshot.name, amount, snapshot.count)
        return snapshot

    def reset(self, counter_id: str) -> Counter | None:
        """Set a counter to zero and clear its history.

        Returns:
            Updated counter, or None if not found.
        """
        with self._lock:
            counter = self._find(counter_id)
            if counter is None:
                return None
            counter.count = 0
            counter.history = []
            snapshot = counter.copy()
        self._commit(ChangeKind.RESET, [counter_id])
        logger.info("Reset counter '%s'", snapshot.name)
        return snapshot

    def reset_many(self, ids: Iterable[str]) -> list[str]:
        """Reset several counters with a single save.

        Returns:
            Ids that were reset.
        """
        wanted = set(ids)
        with self._lock:
            reset_ids = []
            for counter in self._counters:
                if counter.id in wanted:
                    counter.count = 0
                    counter.history = []
                    reset_ids.append(counter.id)
        if reset_ids:
            self._commit(ChangeKind.RESET, reset_ids)
            logger.info("Reset %d counters", len(reset_ids))
        return reset_ids

    def replace_all(self, counters: Iterable[Counter]) -> None:
        """Replace the whole collection (import).

        Raises:
            ValueError: If the new collection repeats an id.
        """
        new_counters = [c.copy() for c in counters]
        ids = [c.id for c in new_counters]
        if len(set(ids)) != len(ids):
            raise ValueError("Counter ids must be unique")
        with self._lock:
            self._counters = new_counters
        self._commit(ChangeKind.REPLACED, ids)
        logger.info("Replaced collection with %d counters", len(new_counters))

    # =========================================================================
    # Callbacks
    # =========================================================================

    def register_callback(self, callback: ChangeCallback) -> None:
        """Register a callback for collection changes.

        Callback receives (kind, ids) after each committed mutation.

        Args:
            callback: Function to call on change.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: ChangeCallback) -> None:
        """Unregister a callback.

        Args:
            callback: Function to remove.
        """
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _commit(self, kind: ChangeKind, ids: list[str]) -> None:
        """Persist, then notify."""
        self.save()
        self._notify(kind, ids)

    def _notify(self, kind: ChangeKind, ids: list[str]) -> None:
        for callback in list(self._callbacks):
            try:
                callback(kind, ids)
            except Exception as e:
                logger.error("Counter callback error: %s", e)


def _save_error_handler(future: Future) -> None:
    """Log errors from asynchronous saves."""
    try:
        future.result()
    except Exception as e:
        logger.error("Asynchronous counters save failed: %s", e)
