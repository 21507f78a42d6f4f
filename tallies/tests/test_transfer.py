"""Tests for transfer.py - Import validation, merge and backup files."""

import json
from datetime import datetime

import pytest

from tallies.core.colors import DEFAULT_COLOR
from tallies.core.models import Counter, HistoryAction, HistoryEntry
from tallies.core.transfer import (
    FileError,
    ImportValidationError,
    export_filename,
    export_json,
    format_summary,
    merge,
    parse_import,
    read_import,
    replace,
    share_message,
    validate,
    write_export,
)


class TestValidate:
    """Test validate() on untrusted payloads."""

    @pytest.mark.parametrize("payload", [{}, "counters", 42, None])
    def test_rejects_non_array(self, payload):
        with pytest.raises(ImportValidationError, match="expected an array"):
            validate(payload)

    def test_rejects_missing_id(self):
        with pytest.raises(ImportValidationError, match="index 1"):
            validate([{"id": "a", "name": "A"}, {"name": "B"}])

    def test_rejects_missing_name(self):
        with pytest.raises(ImportValidationError, match="index 0"):
            validate([{"id": "a"}])

    def test_rejects_non_object_element(self):
        with pytest.raises(ImportValidationError):
            validate(["a"])

    def test_rejects_duplicate_ids(self):
        """A payload repeating an id is rejected as a whole."""
        with pytest.raises(ImportValidationError, match="Duplicate"):
            validate([{"id": "a", "name": "A"}, {"id": "a", "name": "B"}])

    def test_count_defaults_to_zero(self):
        (counter,) = validate([{"id": "a", "name": "A"}])
        assert counter.count == 0
        assert counter.color == DEFAULT_COLOR
        assert counter.history == []

    def test_coerces_values(self):
        """Negative counts clamp, bad targets drop, bad colors default."""
        (counter,) = validate([
            {"id": 7, "name": "A", "count": -3, "target": "ten", "color": "red"},
        ])
        assert counter.id == "7"
        assert counter.count == 0
        assert counter.target is None
        assert counter.color == DEFAULT_COLOR

    def test_skips_malformed_history(self):
        (counter,) = validate([{
            "id": "a",
            "name": "A",
            "count": 2,
            "history": [
                {"timestamp": 1, "action": "increment", "amount": 2},
                {"timestamp": 2, "action": "jump"},
                "junk",
            ],
        }])
        assert counter.history == [
            HistoryEntry(timestamp=1, action=HistoryAction.INCREMENT, amount=2)
        ]

    def test_accepts_own_export(self):
        """Exported text imports back unchanged."""
        original = [
            Counter(id="a", name="Water", count=3, target=8, color="#5AC8FA",
                    history=[HistoryEntry(timestamp=1, action=HistoryAction.INCREMENT)],
                    created_at=100),
        ]
        assert parse_import(export_json(original)) == original


class TestParseImport:
    def test_invalid_json(self):
        with pytest.raises(ImportValidationError, match="not a valid JSON file"):
            parse_import("{nope")

    def test_skips_non_finite_history(self):
        """Infinity/NaN history values are dropped, not fatal."""
        (counter,) = parse_import(
            '[{"id": "1", "name": "A", "history": ['
            '{"timestamp": Infinity, "action": "increment"},'
            '{"timestamp": NaN, "action": "increment"},'
            '{"timestamp": 5, "action": "decrement", "amount": Infinity}'
            "]}]"
        )
        assert counter.history == [
            HistoryEntry(timestamp=5, action=HistoryAction.DECREMENT, amount=1)
        ]

    def test_color_with_trailing_newline_falls_back(self):
        (counter,) = parse_import(json.dumps([{"id": "1", "name": "A", "color": "#5AC8FA\n"}]))
        assert counter.color == DEFAULT_COLOR


class TestMergeReplace:
    """Test import merge policy."""

    def test_merge_imported_wins(self):
        existing = [Counter(id="a", name="Old A", count=1), Counter(id="b", name="B")]
        incoming = [Counter(id="a", name="New A", count=9), Counter(id="c", name="C")]

        result = merge(existing, incoming)
        assert [(c.id, c.name) for c in result] == [("b", "B"), ("a", "New A"), ("c", "C")]

    def test_merge_ids_unique(self):
        existing = [Counter(id="a", name="A")]
        result = merge(existing, [Counter(id="a", name="A2")])
        assert len({c.id for c in result}) == len(result) == 1

    def test_replace(self):
        incoming = [Counter(id="x", name="X")]
        assert replace([Counter(id="a", name="A")], incoming) == incoming


class TestExportText:
    def test_export_is_pretty_json_array(self):
        text = export_json([Counter(id="a", name="A")])
        assert text.startswith("[\n")
        assert json.loads(text)[0]["id"] == "a"

    def test_export_filename(self):
        assert export_filename(datetime(2024, 5, 1, 23, 59)) == "tallies_backup_2024-05-01.json"

    def test_format_summary(self):
        counters = [
            Counter(id="a", name="Water", count=3, target=8),
            Counter(id="b", name="Steps", count=900),
        ]
        assert format_summary(counters) == "Water (3/8)\nSteps: 900"

    def test_share_message(self):
        message = share_message([Counter(id="a", name="Water", count=3)])
        assert message == "My Tallies:\n\nWater: 3\n\nTracked with Tallies app"


class TestBackupFiles:
    """Test write_export/read_import."""

    def test_write_and_read(self, tmp_path):
        counters = [Counter(id="a", name="Water", count=3)]
        path = write_export(tmp_path / "backup.json", counters)
        assert read_import(path) == counters

    def test_write_into_directory_uses_dated_name(self, tmp_path):
        path = write_export(tmp_path, [])
        assert path.parent == tmp_path
        assert path.name.startswith("tallies_backup_")

    def test_write_failure_raises_file_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(FileError):
            write_export(blocker / "backup.json", [])

    def test_read_canceled(self):
        """No file chosen is not an error."""
        assert read_import(None) is None

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileError):
            read_import(tmp_path / "missing.json")

    def test_read_non_utf8(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_bytes(b"\xff\xfe\x00")
        with pytest.raises(FileError, match="UTF-8"):
            read_import(path)

    def test_read_invalid_content(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"not": "a list"}))
        with pytest.raises(ImportValidationError):
            read_import(path)
