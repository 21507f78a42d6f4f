"""Settings - Explicit application configuration.

Settings are built once at startup (from command-line flags) and handed to
the components that need them. The theme preference is the one setting the
user changes at runtime; it lives in the key-value store under "@theme".
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from tallies.core.store import KeyValueStore, StorageError
from tallies.core.undo import DEFAULT_UNDO_TIMEOUT_MS

logger = logging.getLogger(__name__)

# Default paths and ports
DEFAULT_DATA_DIR = Path.home() / ".tallies"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8421

THEME_KEY = "@theme"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"

Theme = Literal["light", "dark"]


@dataclass
class Settings:
    """Application configuration."""

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    undo_timeout_ms: int = DEFAULT_UNDO_TIMEOUT_MS
    async_persistence: bool = False
    debug: bool = False

    @property
    def store_file(self) -> Path:
        """JSON file backing the key-value store."""
        return Path(self.data_dir) / "store.json"


def load_theme(store: KeyValueStore) -> Theme:
    """Read the saved theme.

    Returns:
        Saved theme, or "light" if unset, unreadable or unknown.
    """
    try:
        value = store.get(THEME_KEY)
    except StorageError as e:
        logger.error("Error loading theme: %s", e)
        return DEFAULT_THEME

    if value in THEMES:
        return value
    if value is not None:
        logger.warning("Ignoring unknown theme '%s'", value)
    return DEFAULT_THEME


def save_theme(store: KeyValueStore, theme: str) -> bool:
    """Persist the theme.

    Args:
        store: Key-value store.
        theme: "light" or "dark".

    Returns:
        True if saved.

    Raises:
        ValueError: If theme is unknown.
    """
    if theme not in THEMES:
        raise ValueError(f"Invalid theme: {theme}. Must be one of: {list(THEMES)}")
    try:
        store.set(THEME_KEY, theme)
    except StorageError as e:
        logger.error("Error saving theme: %s", e)
        return False
    logger.info("Theme set to %s", theme)
    return True
