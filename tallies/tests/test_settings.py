"""Tests for settings.py and templates.py."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tallies.core.colors import is_valid_hex
from tallies.core.settings import (
    DEFAULT_PORT,
    THEME_KEY,
    Settings,
    load_theme,
    save_theme,
)
from tallies.core.store import MemoryStore, StorageError
from tallies.core.templates import COUNTER_TEMPLATES, get_template


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.host == "127.0.0.1"
        assert settings.port == DEFAULT_PORT
        assert settings.undo_timeout_ms == 5000
        assert not settings.async_persistence

    def test_store_file(self, tmp_path):
        assert Settings(data_dir=tmp_path).store_file == Path(tmp_path) / "store.json"


class TestTheme:
    def test_default_is_light(self):
        assert load_theme(MemoryStore()) == "light"

    def test_save_and_load(self):
        store = MemoryStore()
        assert save_theme(store, "dark")
        assert store.get(THEME_KEY) == "dark"
        assert load_theme(store) == "dark"

    def test_unknown_saved_value_falls_back(self):
        assert load_theme(MemoryStore({THEME_KEY: "neon"})) == "light"

    def test_storage_error_falls_back(self):
        store = MagicMock()
        store.get.side_effect = StorageError("gone")
        assert load_theme(store) == "light"

    def test_save_rejects_unknown_theme(self):
        with pytest.raises(ValueError):
            save_theme(MemoryStore(), "neon")

    def test_save_storage_error_returns_false(self):
        store = MagicMock()
        store.set.side_effect = StorageError("read-only")
        assert save_theme(store, "dark") is False


class TestTemplates:
    def test_templates_are_valid(self):
        """Every template would pass the add-counter form."""
        assert len(COUNTER_TEMPLATES) == 8
        for template in COUNTER_TEMPLATES:
            assert template.name
            assert template.target > 0
            assert is_valid_hex(template.color)

    def test_get_template(self):
        assert get_template("water glasses").target == 8
        assert get_template("missing") is None
