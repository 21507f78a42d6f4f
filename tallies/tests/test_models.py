"""Tests for models.py - Counter and HistoryEntry."""

import pytest

from tallies.core.colors import DEFAULT_COLOR
from tallies.core.models import Counter, HistoryAction, HistoryEntry, new_counter_id


class TestHistoryEntry:
    """Test HistoryEntry serialization."""

    def test_to_dict(self):
        """Should use the persisted field names."""
        entry = HistoryEntry(timestamp=1000, action=HistoryAction.DECREMENT, amount=5)
        assert entry.to_dict() == {"timestamp": 1000, "action": "decrement", "amount": 5}

    def test_from_dict_defaults_amount(self):
        """Missing or invalid amount becomes 1."""
        assert HistoryEntry.from_dict({"timestamp": 1, "action": "increment"}).amount == 1
        assert HistoryEntry.from_dict({"timestamp": 1, "action": "increment", "amount": 0}).amount == 1
        assert HistoryEntry.from_dict({"timestamp": 1, "action": "increment", "amount": "x"}).amount == 1

    def test_from_dict_rejects_bad_action(self):
        """Unknown actions raise ValueError."""
        with pytest.raises(ValueError):
            HistoryEntry.from_dict({"timestamp": 1, "action": "multiply"})

    def test_from_dict_rejects_bad_timestamp(self):
        """Non-numeric timestamps raise ValueError."""
        with pytest.raises(ValueError):
            HistoryEntry.from_dict({"timestamp": "today", "action": "increment"})

    def test_from_dict_missing_key(self):
        """Missing timestamp raises KeyError."""
        with pytest.raises(KeyError):
            HistoryEntry.from_dict({"action": "increment"})


class TestCounter:
    """Test Counter."""

    def test_create_defaults(self):
        """New counters start at zero with no history."""
        counter = Counter.create("Water")
        assert counter.name == "Water"
        assert counter.count == 0
        assert counter.target is None
        assert counter.color == DEFAULT_COLOR
        assert counter.history == []
        assert counter.created_at is not None

    def test_create_zero_target_means_no_goal(self):
        """A target of 0 is stored as no goal."""
        assert Counter.create("Water", target=0).target is None

    def test_ids_are_unique(self):
        """Ids generated back to back never collide."""
        ids = {new_counter_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_goal_reached_and_progress(self):
        """Progress is capped at 1.0 and goal is reached at target."""
        counter = Counter(id="a", name="Water", count=4, target=8)
        assert counter.progress == 0.5
        assert not counter.goal_reached

        counter.count = 10
        assert counter.progress == 1.0
        assert counter.goal_reached

    def test_no_target_has_no_progress(self):
        """Without a goal, progress is None and the goal is never reached."""
        counter = Counter(id="a", name="Water", count=99)
        assert counter.progress is None
        assert not counter.goal_reached

    def test_last_activity(self):
        """Last activity is the newest history timestamp."""
        counter = Counter(id="a", name="Water")
        assert counter.last_activity is None
        counter.history.append(HistoryEntry(timestamp=5, action=HistoryAction.INCREMENT))
        counter.history.append(HistoryEntry(timestamp=9, action=HistoryAction.INCREMENT))
        assert counter.last_activity == 9

    def test_copy_is_independent(self):
        """Mutating a copy's history must not touch the original."""
        counter = Counter(id="a", name="Water")
        snapshot = counter.copy()
        snapshot.history.append(HistoryEntry(timestamp=1, action=HistoryAction.INCREMENT))
        snapshot.count = 3
        assert counter.history == []
        assert counter.count == 0

    def test_to_dict_field_order(self):
        """Serialized keys follow the export field order."""
        counter = Counter(id="a", name="Water", count=2, target=8, created_at=123)
        assert list(counter.to_dict()) == [
            "id",
            "name",
            "count",
            "target",
            "color",
            "history",
            "createdAt",
        ]

    def test_to_dict_omits_optional_fields(self):
        """target and createdAt are omitted when unset."""
        data = Counter(id="a", name="Water").to_dict()
        assert "target" not in data
        assert "createdAt" not in data

    def test_from_dict_round_trip(self):
        """to_dict/from_dict preserve every field."""
        counter = Counter(
            id="a",
            name="Water",
            count=3,
            target=8,
            color="#5AC8FA",
            history=[HistoryEntry(timestamp=1, action=HistoryAction.INCREMENT, amount=3)],
            created_at=100,
        )
        assert Counter.from_dict(counter.to_dict()) == counter

    def test_from_dict_rejects_negative_count(self):
        """Stored data with a negative count is invalid."""
        with pytest.raises(ValueError):
            Counter.from_dict({"id": "a", "name": "Water", "count": -1})

    def test_from_dict_requires_id(self):
        """Missing id raises KeyError."""
        with pytest.raises(KeyError):
            Counter.from_dict({"name": "Water"})
