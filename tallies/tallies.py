"""Tallies - Command-line entry point.

Runs the API server by default; --export, --import and --stats work on the
saved counters directly and exit.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from tallies.core.session import configure_session
from tallies.core.settings import (
    DEFAULT_DATA_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    Settings,
)
from tallies.core.transfer import (
    IMPORT_MODES,
    MODE_MERGE,
    FileError,
    read_import,
    write_export,
)
from tallies.core.undo import DEFAULT_UNDO_TIMEOUT_MS
from tallies.core.validation import ValidationError

logger = logging.getLogger("tallies")


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO
    format_str = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%H:%M:%S",
    )
    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(description="Tallies - Tally counter server")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help="Directory holding the counter store",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Host to bind to")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on")
    parser.add_argument(
        "--undo-ms",
        type=int,
        default=DEFAULT_UNDO_TIMEOUT_MS,
        help="Undo window after deleting a counter (milliseconds)",
    )
    parser.add_argument(
        "--async-save",
        action="store_true",
        help="Write the store in the background",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--export",
        type=Path,
        metavar="PATH",
        help="Write a backup file (or a dated backup inside a directory) and exit",
    )
    actions.add_argument(
        "--import",
        dest="import_path",
        type=Path,
        metavar="PATH",
        help="Import a backup file and exit",
    )
    actions.add_argument(
        "--stats",
        action="store_true",
        help="Print statistics as JSON and exit",
    )
    parser.add_argument(
        "--mode",
        choices=IMPORT_MODES,
        default=MODE_MERGE,
        help="Import mode (default: merge)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    setup_logging(args.debug)

    settings = Settings(
        data_dir=args.data_dir,
        host=args.host,
        port=args.port,
        undo_timeout_ms=args.undo_ms,
        async_persistence=args.async_save,
        debug=args.debug,
    )
    session = configure_session(settings)

    try:
        if args.export:
            path = write_export(args.export, session.repository.get_all())
            print(f"Exported {len(session.repository)} counters to {path}")
            return 0

        if args.import_path:
            incoming = read_import(args.import_path)
            result = session.import_counters(incoming, args.mode)
            print(f"Imported {len(incoming)} counters ({args.mode}), {len(result)} total")
            return 0

        if args.stats:
            print(json.dumps(session.statistics().to_dict(), indent=2))
            return 0

    except (FileError, ValidationError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if args.export or args.import_path or args.stats:
            session.close()

    from tallies.web.server import run_server

    run_server(settings.host, settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
