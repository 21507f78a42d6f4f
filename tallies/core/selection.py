"""Selection Manager - Counter ids picked for bulk reset/delete.

Selection is independent of the repository. Whoever deletes counters must
reconcile the selection (TallySession does this through a repository
callback), otherwise stale ids would linger in the set.
"""

import logging
import threading
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class SelectionManager:
    """Tracks selection mode and the selected ids.

    Ids are kept in the order they were selected.
    """

    def __init__(self) -> None:
        self._active = False
        self._selected: dict[str, None] = {}  # ordered set
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        """True while in selection mode."""
        return self._active

    @property
    def selected_ids(self) -> list[str]:
        """Selected ids in selection order."""
        with self._lock:
            return list(self._selected)

    @property
    def count(self) -> int:
        """Number of selected ids."""
        return len(self._selected)

    def enter_selection_mode(self) -> None:
        """Enter selection mode."""
        self._active = True
        logger.debug("Selection mode on")

    def exit_selection_mode(self) -> None:
        """Leave selection mode. Always clears the selection."""
        with self._lock:
            self._active = False
            self._selected.clear()
        logger.debug("Selection mode off")

    def toggle_mode(self) -> bool:
        """Flip selection mode.

        Returns:
            True if selection mode is now on.
        """
        if self._active:
            self.exit_selection_mode()
        else:
            self.enter_selection_mode()
        return self._active

    def toggle(self, counter_id: str) -> bool:
        """Select an id if absent, deselect it if present.

        Returns:
            True if the id is now selected.
        """
        with self._lock:
            if counter_id in self._selected:
                del self._selected[counter_id]
                return False
            self._selected[counter_id] = None
            return True

    def select_all(self, all_ids: Iterable[str]) -> None:
        """Select every id, or clear if everything is already selected.

        Args:
            all_ids: Ids of all existing counters.
        """
        ids = list(dict.fromkeys(all_ids))
        with self._lock:
            if set(self._selected) == set(ids):
                self._selected.clear()
            else:
                self._selected = dict.fromkeys(ids)

    def clear(self) -> None:
        """Empty the selection and leave selection mode."""
        self.exit_selection_mode()

    def is_selected(self, counter_id: str) -> bool:
        """Check whether an id is selected."""
        return counter_id in self._selected

    def discard(self, counter_id: str) -> None:
        """Drop an id if selected (e.g. after its counter was deleted)."""
        with self._lock:
            self._selected.pop(counter_id, None)

    def retain(self, existing_ids: Iterable[str]) -> list[str]:
        """Drop selected ids that no longer exist.

        Args:
            existing_ids: Ids currently in the collection.

        Returns:
            Ids that were dropped.
        """
        existing = set(existing_ids)
        with self._lock:
            stale = [cid for cid in self._selected if cid not in existing]
            for cid in stale:
                del self._selected[cid]
        if stale:
            logger.debug("Dropped %d stale selected ids", len(stale))
        return stale
