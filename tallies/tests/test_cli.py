"""Tests for tallies.py - Command-line entry point."""

import json
from unittest.mock import patch

import pytest

from tallies.core.session import TallySession, reset_session
from tallies.core.settings import Settings
from tallies.tallies import build_parser, main


@pytest.fixture(autouse=True)
def clean_session():
    reset_session()
    yield
    reset_session()


def seed(data_dir, *names):
    """Create counters in a data dir."""
    session = TallySession(Settings(data_dir=data_dir))
    try:
        return [session.add_counter(name) for name in names]
    finally:
        session.close()


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.mode == "merge"
        assert not args.stats
        assert args.export is None

    def test_export_and_import_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--export", "a.json", "--import", "b.json"])

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--mode", "append"])


class TestMain:
    """Test one-shot commands."""

    def test_stats(self, tmp_path, capsys):
        assert main(["--data-dir", str(tmp_path), "--stats"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["totalCounters"] == 0

    def test_export_then_import(self, tmp_path, capsys):
        source = tmp_path / "source"
        seed(source, "Water", "Steps")

        backup = tmp_path / "backup.json"
        assert main(["--data-dir", str(source), "--export", str(backup)]) == 0
        assert [c["name"] for c in json.loads(backup.read_text(encoding="utf-8"))] == [
            "Water",
            "Steps",
        ]

        target = tmp_path / "target"
        assert main(["--data-dir", str(target), "--import", str(backup)]) == 0
        assert "Imported 2 counters" in capsys.readouterr().out

        reset_session()
        assert main(["--data-dir", str(target), "--stats"]) == 0
        assert json.loads(capsys.readouterr().out)["totalCounters"] == 2

    def test_import_invalid_file(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "an array"}', encoding="utf-8")

        assert main(["--data-dir", str(tmp_path), "--import", str(bad)]) == 1
        assert "expected an array" in capsys.readouterr().err

    def test_import_missing_file(self, tmp_path):
        assert main(["--data-dir", str(tmp_path), "--import", str(tmp_path / "nope.json")]) == 1

    def test_serve_by_default(self, tmp_path):
        with patch("tallies.web.server.run_server") as mock_run:
            assert main(["--data-dir", str(tmp_path), "--port", "9000"]) == 0
            mock_run.assert_called_once_with("127.0.0.1", 9000)
