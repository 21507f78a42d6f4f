"""Tests for selection.py - SelectionManager."""

from tallies.core.selection import SelectionManager


class TestSelectionManager:
    """Test selection mode and ids."""

    def test_starts_inactive_and_empty(self):
        selection = SelectionManager()
        assert not selection.is_active
        assert selection.selected_ids == []
        assert selection.count == 0

    def test_toggle_adds_and_removes(self):
        selection = SelectionManager()
        assert selection.toggle("a") is True
        assert selection.is_selected("a")
        assert selection.toggle("a") is False
        assert not selection.is_selected("a")

    def test_keeps_selection_order(self):
        selection = SelectionManager()
        for cid in ["c", "a", "b"]:
            selection.toggle(cid)
        assert selection.selected_ids == ["c", "a", "b"]

    def test_exit_mode_clears(self):
        """Leaving selection mode always empties the selection."""
        selection = SelectionManager()
        selection.enter_selection_mode()
        selection.toggle("a")
        selection.exit_selection_mode()
        assert not selection.is_active
        assert selection.count == 0

    def test_toggle_mode(self):
        selection = SelectionManager()
        assert selection.toggle_mode() is True
        selection.toggle("a")
        assert selection.toggle_mode() is False
        assert selection.count == 0

    def test_select_all(self):
        selection = SelectionManager()
        selection.toggle("a")
        selection.select_all(["a", "b", "c"])
        assert selection.selected_ids == ["a", "b", "c"]

    def test_select_all_when_all_selected_clears(self):
        """Select-all acts as a toggle when everything is already selected."""
        selection = SelectionManager()
        selection.select_all(["a", "b"])
        selection.select_all(["b", "a"])
        assert selection.count == 0

    def test_clear_leaves_mode(self):
        selection = SelectionManager()
        selection.enter_selection_mode()
        selection.toggle("a")
        selection.clear()
        assert not selection.is_active
        assert selection.count == 0

    def test_discard(self):
        selection = SelectionManager()
        selection.toggle("a")
        selection.discard("a")
        selection.discard("missing")
        assert selection.count == 0

    def test_retain_drops_stale_ids(self):
        selection = SelectionManager()
        for cid in ["a", "b", "c"]:
            selection.toggle(cid)
        assert selection.retain(["a", "c", "d"]) == ["b"]
        assert selection.selected_ids == ["a", "c"]
