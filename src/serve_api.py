"""Serve the ingestion HTTP trigger with uvicorn.

Usage:
    CSV_FILE_PATH=data/raw/users.csv uv run src/serve_api.py [--config FILE]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root is in sys.path for uv run script invocation
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import uvicorn  # noqa: E402

from src.api.app import create_app  # noqa: E402
from src.lib.config import load_config  # noqa: E402
from src.lib.logging_config import setup_logging  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    """Load configuration and run the API server until interrupted.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(description="Serve the CSV ingestion API.")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    args = parser.parse_args(argv)

    logger = setup_logging()
    config = load_config(args.config)
    logger.info("CSV->users ingestion API running on port %d", config.port)
    logger.info("POST /process to start processing the configured CSV file.")
    uvicorn.run(create_app(config), host=config.host, port=config.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
