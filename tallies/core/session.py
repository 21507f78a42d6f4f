"""Tally Session - Wires the repository, selection and undo together.

The session is the entry point for user-level flows that touch more than
one component:

- delete: repository delete -> undo slot -> selection reconcile
- undo: undo slot -> repository add_restored
- bulk reset/delete of the selection, then leave selection mode
- import: merge or replace into the repository

Input validation happens here; the repository trusts its arguments.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from tallies.core.colors import DEFAULT_COLOR
from tallies.core.counters import ChangeKind, CounterRepository
from tallies.core.models import Counter
from tallies.core.selection import SelectionManager
from tallies.core.settings import Settings, Theme, load_theme, save_theme
from tallies.core.statistics import CounterStatistics, compute_statistics
from tallies.core.store import JsonFileStore, KeyValueStore
from tallies.core.transfer import (
    IMPORT_MODES,
    MODE_MERGE,
    ImportValidationError,
    export_json,
    merge,
    replace,
)
from tallies.core.undo import UndoManager
from tallies.core.validation import (
    ValidationError,
    parse_int_input,
    sanitize_name,
    validate_color,
    validate_count,
    validate_increment_amount,
    validate_name,
    validate_target,
)

logger = logging.getLogger(__name__)


def _checked_name(name: str) -> str:
    if not isinstance(name, str):
        raise ValidationError("Counter name cannot be empty")
    error = validate_name(name)
    if error:
        raise ValidationError(error)
    return sanitize_name(name)


def _checked_target(target: int | str | None) -> int | None:
    if target is None or target == "":
        return None
    return parse_int_input(target, validate_target)


def _checked_color(color: str) -> str:
    error = validate_color(color)
    if error:
        raise ValidationError(error)
    return color.upper()


class TallySession:
    """One user's counters, selection and undo slot."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
    ) -> None:
        """Initialize the session and load counters.

        Args:
            settings: Configuration (defaults if None).
            store: Key-value store (default: JSON file in settings.data_dir).
        """
        self.settings = settings or Settings()
        self.store = store if store is not None else JsonFileStore(self.settings.store_file)

        self._executor: ThreadPoolExecutor | None = None
        if self.settings.async_persistence:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tallies-save")

        self.repository = CounterRepository(self.store, executor=self._executor)
        self.selection = SelectionManager()
        self.undo = UndoManager[Counter](timeout_ms=self.settings.undo_timeout_ms)

        self.repository.register_callback(self._on_counters_changed)
        self.repository.load()

    def close(self) -> None:
        """Drop the undo slot and flush pending saves."""
        self.undo.clear()
        self.repository.unregister_callback(self._on_counters_changed)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _on_counters_changed(self, kind: ChangeKind, ids: list[str]) -> None:
        """Keep the selection a subset of existing ids."""
        if kind in (ChangeKind.DELETED, ChangeKind.REPLACED, ChangeKind.LOADED):
            self.selection.retain(self.repository.ids())

    # =========================================================================
    # Counter operations
    # =========================================================================

    def add_counter(
        self,
        name: str,
        target: int | str | None = None,
        color: str | None = None,
    ) -> Counter:
        """Validate input and create a counter.

        Raises:
            ValidationError: If name, target or color is invalid.
        """
        return self.repository.add(
            _checked_name(name),
            target=_checked_target(target),
            color=_checked_color(color) if color is not None else DEFAULT_COLOR,
        )

    def edit_counter(self, counter_id: str, **changes: Any) -> Counter | None:
        """Validate and apply edits from the edit form.

        Args:
            counter_id: Counter id.
            **changes: Any of name, target (None clears it), color, count.

        Returns:
            Updated counter, or None if not found.

        Raises:
            ValidationError: If a value is invalid.
        """
        updates: dict[str, Any] = {}
        if "name" in changes:
            updates["name"] = _checked_name(changes.pop("name"))
        if "target" in changes:
            updates["target"] = _checked_target(changes.pop("target"))
        if "color" in changes:
            updates["color"] = _checked_color(changes.pop("color"))
        if "count" in changes:
            updates["count"] = parse_int_input(changes.pop("count"), validate_count)
        if changes:
            raise ValidationError(f"Unknown field(s): {', '.join(sorted(changes))}")
        if not updates:
            return self.repository.get(counter_id)
        return self.repository.update(counter_id, **updates)

    def set_count(self, counter_id: str, value: int | str) -> Counter | None:
        """Overwrite a count directly (quick edit). History is untouched."""
        return self.edit_counter(counter_id, count=value)

    def increment(self, counter_id: str, amount: int | str = 1) -> Counter | None:
        """Validate a custom amount and increment.

        Raises:
            ValidationError: If amount is not a positive whole number.
        """
        return self.repository.increment(
            counter_id, parse_int_input(amount, validate_increment_amount)
        )

    def decrement(self, counter_id: str, amount: int | str = 1) -> Counter | None:
        """Validate a custom amount and decrement.

        Raises:
            ValidationError: If amount is not a positive whole number.
        """
        return self.repository.decrement(
            counter_id, parse_int_input(amount, validate_increment_amount)
        )

    def delete_counter(self, counter_id: str) -> Counter | None:
        """Delete a counter and hold it for undo.

        Returns:
            The deleted counter, or None if not found.
        """
        deleted = self.repository.delete(counter_id)
        if deleted is not None:
            self.undo.mark_deleted(deleted)
        return deleted

    def undo_delete(self) -> Counter | None:
        """Restore the most recently deleted counter.

        Returns:
            Restored counter, or None if nothing is pending.
        """
        counter = self.undo.undo()
        if counter is None:
            return None
        if not self.repository.add_restored(counter):
            return None
        return counter

    # =========================================================================
    # Selection operations
    # =========================================================================

    def select_all(self) -> None:
        """Toggle-all over the current collection."""
        self.selection.select_all(self.repository.ids())

    def reset_selected(self) -> list[str]:
        """Reset every selected counter, then leave selection mode.

        Returns:
            Ids that were reset.
        """
        reset_ids = self.repository.reset_many(self.selection.selected_ids)
        self.selection.clear()
        return reset_ids

    def delete_counters(self, ids: list[str]) -> list[Counter]:
        """Delete several counters in one write.

        Bulk deletes are not undoable and supersede any pending undo.

        Returns:
            Deleted counters.
        """
        deleted = self.repository.delete_many(ids)
        if deleted:
            self.undo.clear()
        return deleted

    def delete_selected(self) -> list[Counter]:
        """Delete every selected counter, then leave selection mode.

        Returns:
            Deleted counters.
        """
        deleted = self.delete_counters(self.selection.selected_ids)
        self.selection.clear()
        return deleted

    # =========================================================================
    # Import / export / statistics
    # =========================================================================

    def import_counters(self, incoming: list[Counter], mode: str = MODE_MERGE) -> list[Counter]:
        """Apply a validated import.

        Args:
            incoming: Counters from transfer.validate()/parse_import().
            mode: "merge" (dedup by id, imported wins) or "replace".

        Returns:
            The resulting collection.

        Raises:
            ImportValidationError: If mode is unknown.
        """
        if mode not in IMPORT_MODES:
            raise ImportValidationError(f"Invalid import mode: {mode}")

        existing = self.repository.get_all()
        if mode == MODE_MERGE:
            result = merge(existing, incoming)
        else:
            result = replace(existing, incoming)
            self.undo.clear()

        self.repository.replace_all(result)
        logger.info("Imported %d counters (%s)", len(incoming), mode)
        return self.repository.get_all()

    def export_text(self) -> str:
        """Backup file text for the whole collection."""
        return export_json(self.repository.get_all())

    def statistics(self, now: datetime | None = None) -> CounterStatistics:
        """Summary statistics for the current collection."""
        return compute_statistics(self.repository.get_all(), now=now)

    # =========================================================================
    # Theme
    # =========================================================================

    def get_theme(self) -> Theme:
        return load_theme(self.store)

    def set_theme(self, theme: str) -> bool:
        return save_theme(self.store, theme)


# Global session instance
_session: TallySession | None = None


def get_session() -> TallySession:
    """Get the global session, creating it with default settings if needed.

    Returns:
        The TallySession singleton.
    """
    global _session
    if _session is None:
        _session = TallySession()
    return _session


def configure_session(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
) -> TallySession:
    """Replace the global session (call once at startup).

    Args:
        settings: Configuration.
        store: Optional store override.

    Returns:
        The new session.
    """
    global _session
    if _session is not None:
        _session.close()
    _session = TallySession(settings, store)
    return _session


def reset_session() -> None:
    """Close and forget the global session."""
    global _session
    if _session is not None:
        _session.close()
    _session = None
