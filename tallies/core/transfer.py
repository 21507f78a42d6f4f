"""Import/Export - Backup files and merging external counter sets.

Export format: UTF-8 JSON array of counters, pretty-printed, fields in the
order id, name, count, target, color, history, createdAt.

Import is all-or-nothing: validate() either returns every counter in the
payload or raises ImportValidationError and nothing is applied.

Merge policy: deduplicate by id, imported wins. Existing counters whose id
appears in the import are dropped, then the imported counters are appended
in file order.
"""

import json
import logging
import math
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from tallies.core.colors import DEFAULT_COLOR, is_valid_hex
from tallies.core.counters import serialize_counters
from tallies.core.models import Counter, HistoryEntry
from tallies.core.validation import ValidationError

logger = logging.getLogger(__name__)

EXPORT_MEDIA_TYPE = "application/json"
SUMMARY_MEDIA_TYPE = "text/plain"

# Import modes
MODE_MERGE = "merge"
MODE_REPLACE = "replace"
IMPORT_MODES = (MODE_MERGE, MODE_REPLACE)


class ImportValidationError(ValidationError):
    """Raised when an import payload is rejected."""


class FileError(Exception):
    """Raised when a backup file cannot be read or written."""


# =============================================================================
# Validation
# =============================================================================


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, int(value))


def _coerce_target(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    target = int(value)
    return target if target > 0 else None


def _coerce_history(value: Any) -> list[HistoryEntry]:
    if not isinstance(value, list):
        return []
    entries = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        try:
            entries.append(HistoryEntry.from_dict(raw))
        except (KeyError, ValueError):
            continue
    return entries


def validate(raw: Any) -> list[Counter]:
    """Validate an external counter array.

    Args:
        raw: Decoded JSON payload.

    Returns:
        Counters built from the payload.

    Raises:
        ImportValidationError: If the payload is not a list, an element is
            not an object, lacks a non-empty id or a string name, or two
            elements share an id.
    """
    if not isinstance(raw, list):
        raise ImportValidationError("Invalid data format: expected an array")

    counters: list[Counter] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ImportValidationError(f"Invalid counter at index {index}")

        raw_id = item.get("id")
        if raw_id is None or isinstance(raw_id, bool) or str(raw_id) == "":
            raise ImportValidationError(f"Invalid counter at index {index}: missing id")
        if not isinstance(item.get("name"), str):
            raise ImportValidationError(f"Invalid counter at index {index}: missing name")

        counter_id = str(raw_id)
        if counter_id in seen:
            raise ImportValidationError(f"Duplicate counter id at index {index}: {counter_id}")
        seen.add(counter_id)

        created_at = item.get("createdAt")
        counters.append(
            Counter(
                id=counter_id,
                name=item["name"],
                count=_coerce_count(item.get("count")),
                target=_coerce_target(item.get("target")),
                color=item["color"] if is_valid_hex(item.get("color")) else DEFAULT_COLOR,
                history=_coerce_history(item.get("history")),
                created_at=created_at
                if isinstance(created_at, int) and not isinstance(created_at, bool)
                else None,
            )
        )

    return counters


def parse_import(text: str) -> list[Counter]:
    """Decode and validate backup file text.

    Raises:
        ImportValidationError: If the text is not JSON or fails validate().
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportValidationError(f"The file is not a valid JSON file: {e}") from e
    return validate(data)


# =============================================================================
# Merge / replace
# =============================================================================


def merge(existing: Iterable[Counter], incoming: Iterable[Counter]) -> list[Counter]:
    """Combine collections, imported counters replacing same-id existing ones.

    Args:
        existing: Current collection.
        incoming: Validated import.

    Returns:
        Existing counters not shadowed by the import, followed by the import.
    """
    incoming = list(incoming)
    incoming_ids = {c.id for c in incoming}
    kept = [c for c in existing if c.id not in incoming_ids]
    return kept + incoming


def replace(existing: Iterable[Counter], incoming: Iterable[Counter]) -> list[Counter]:
    """Discard the current collection in favour of the import."""
    return list(incoming)


# =============================================================================
# Export
# =============================================================================


def export_json(counters: Iterable[Counter]) -> str:
    """Serialize counters to backup file text."""
    return serialize_counters(counters, indent=2)


def export_filename(now: datetime | None = None) -> str:
    """Backup filename for a date, e.g. tallies_backup_2024-05-01.json."""
    now = now or datetime.now()
    return f"tallies_backup_{now.date().isoformat()}.json"


def format_summary(counters: Iterable[Counter]) -> str:
    """One line per counter: "Name: 3", or "Name (3/8)" with a goal."""
    lines = []
    for counter in counters:
        if counter.has_target:
            lines.append(f"{counter.name} ({counter.count}/{counter.target})")
        else:
            lines.append(f"{counter.name}: {counter.count}")
    return "\n".join(lines)


def share_message(counters: Iterable[Counter]) -> str:
    """Plain-text summary for sharing."""
    return f"My Tallies:\n\n{format_summary(counters)}\n\nTracked with Tallies app"


# =============================================================================
# File collaborators
# =============================================================================


def write_export(path: Path | str, counters: Iterable[Counter]) -> Path:
    """Write a backup file.

    Args:
        path: Target file, or a directory to place a dated backup in.
        counters: Counters to export.

    Returns:
        Path that was written.

    Raises:
        FileError: If the file cannot be written.
    """
    path = Path(path)
    if path.is_dir():
        path = path / export_filename()

    data = export_json(counters)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(data)
    except OSError as e:
        raise FileError(f"Failed to export data: {e}") from e

    logger.info("Exported counters to %s", path)
    return path


def read_import(path: Path | str | None) -> list[Counter] | None:
    """Read and validate a backup file.

    Args:
        path: File chosen by the user, or None if the picker was dismissed.

    Returns:
        Validated counters, or None when no file was chosen.

    Raises:
        FileError: If the file cannot be read.
        ImportValidationError: If its contents are not a valid backup.
    """
    if path is None:
        logger.info("Import canceled by user")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise FileError("File must be UTF-8 encoded") from e
    except OSError as e:
        raise FileError(f"Failed to read the selected file: {e}") from e

    counters = parse_import(text)
    logger.info("Read %d counters from %s", len(counters), path)
    return counters
