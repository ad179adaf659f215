# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "polars",
#     "duckdb",
#     "pyarrow",
#     "pyyaml",
# ]
# ///
"""Ingest a CSV file of users into a local DuckDB warehouse.

Streams the CSV line by line, converts each record into a users row
(name, age, address JSON, additional_info JSON), writes rows in batches
and prints the age distribution of all stored users.

Usage:
    uv run src/ingest_users.py [OPTIONS]

Examples:
    uv run src/ingest_users.py --source data/raw/users.csv
    uv run src/ingest_users.py --config config/ingest.yaml --batch-size 500
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is in sys.path for uv run script invocation
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from src.ingestion.errors import IngestError  # noqa: E402
from src.ingestion.pipeline import run_pipeline  # noqa: E402
from src.lib.config import load_config  # noqa: E402
from src.lib.logging_config import setup_logging  # noqa: E402


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        msg = f"must be a positive integer, got {value}"
        raise argparse.ArgumentTypeError(msg)
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the ingestion pipeline.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Ingest a users CSV file into DuckDB.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  uv run src/ingest_users.py --source data/raw/users.csv\n"
            "  uv run src/ingest_users.py --config config/ingest.yaml\n"
        ),
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: environment only)",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="CSV file to ingest (overrides config and CSV_FILE_PATH)",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Path to DuckDB database file (overrides config and DB_PATH)",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Rows per batch insert (overrides config and BATCH_SIZE)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ingestion pipeline.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_args(argv)
    logger = setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config(args.config)
        source_path = args.source or config.require_source()
    except (FileNotFoundError, IngestError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    db_path = args.db_path or config.db_path
    batch_size = args.batch_size or config.batch_size
    logger.info(
        "Starting ingestion: source=%s, db=%s, batch_size=%d",
        source_path,
        db_path,
        batch_size,
    )

    try:
        result = run_pipeline(
            source_path=source_path,
            db_path=db_path,
            batch_size=batch_size,
        )
    except IngestError:
        logger.exception("Pipeline execution failed")
        return 1

    print(result.summary())
    print(result.distribution.summary())

    return 0


if __name__ == "__main__":
    sys.exit(main())
