"""Ingestion pipeline orchestrator.

Coordinates the end-to-end flow: open the CSV source, stream it line by
line through the parser and record builder, write rows to DuckDB in
batches, then report the age distribution.

Each line is fully processed (including any batch write it triggers)
before the next line is read, so a fast source never runs ahead of the
store.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import closing
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from src.ingestion.batch import DEFAULT_BATCH_SIZE, BatchAccumulator
from src.ingestion.distribution import compute_age_distribution
from src.ingestion.errors import IngestError, NotFoundError, ReadError
from src.ingestion.line_parser import is_blank, parse_line
from src.ingestion.loader import DEFAULT_DB_PATH, UserStore, complete_run, create_run
from src.ingestion.models import DriverState, ProcessResult, RunResult, RunStatus
from src.ingestion.record_builder import build_row

ProgressCallback = Callable[[int], None]

logger = logging.getLogger("ingest_users")


def _no_progress(_count: int) -> None:
    return None


def open_source(source_path: str | Path) -> Iterator[str]:
    """Open a CSV source and return a lazy iterator over its lines.

    The file is checked and opened immediately so that a missing or
    unreadable source fails before any line is consumed. Lines are
    yielded without their trailing newline.

    Args:
        source_path: Path to the CSV file.

    Returns:
        Generator of lines; close it to release the file handle.

    Raises:
        NotFoundError: If the path is missing, not a file, or unreadable.
    """
    path = Path(source_path)
    if not path.is_file():
        raise NotFoundError(f"CSV file not found at {path}")
    try:
        handle = path.open(encoding="utf-8", newline="")
    except OSError as exc:
        raise NotFoundError(f"CSV file at {path} could not be opened: {exc}") from exc
    logger.info("Reading %s", path)
    return _iter_lines(handle, path)


def _iter_lines(handle: TextIO, path: Path) -> Iterator[str]:
    with handle:
        try:
            for line in handle:
                yield line.rstrip("\r\n")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadError(f"Failed while reading {path}: {exc}") from exc


class StreamDriver:
    """Stream one CSV source into a batch writer.

    States move AWAITING_HEADER -> STREAMING -> DRAINING -> DONE, or to
    FAILED on any error. A driver instance handles a single run.

    Attributes:
        source_path: Path to the CSV source.
        state: Current lifecycle state.
        headers: Header List, empty until the header line is seen.
        line_number: 1-based number of the last physical line read.
    """

    def __init__(
        self,
        source_path: str | Path,
        store: UserStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            source_path: Path to the CSV source.
            store: Persistence handle receiving the batches.
            batch_size: Rows per batch insert.
            on_progress: Called with the cumulative row count after
                every batch write. Exceptions it raises are logged and
                ignored.
        """
        self.source_path = Path(source_path)
        self.state = DriverState.AWAITING_HEADER
        self.headers: tuple[str, ...] = ()
        self.line_number = 0
        self._accumulator = BatchAccumulator(store.write_batch, batch_size)
        self._on_progress = on_progress or _no_progress

    @property
    def rows_written(self) -> int:
        """Rows committed to the store so far."""
        return self._accumulator.rows_written

    def run(self) -> ProcessResult:
        """Consume the whole source.

        Returns:
            ProcessResult with row count, headers and batch statistics.

        Raises:
            NotFoundError: If the source cannot be opened.
            ValidationError: If a data line is invalid (line annotated).
            PersistenceError: If a batch write fails.
            ReadError: If the source fails mid-read.
        """
        if self.state is not DriverState.AWAITING_HEADER:
            msg = f"StreamDriver can only run once (state={self.state.value})"
            raise RuntimeError(msg)

        try:
            lines = open_source(self.source_path)
            with closing(lines):
                for line in lines:
                    self.line_number += 1
                    self._consume(line)

            self.state = DriverState.DRAINING
            self._report(self._accumulator.flush())
        except Exception:
            self.state = DriverState.FAILED
            raise

        self.state = DriverState.DONE
        if not self.headers:
            logger.warning("No header line found in %s", self.source_path)
        return ProcessResult(
            processed=self._accumulator.rows_written,
            headers=self.headers,
            lines_read=self.line_number,
            batches_written=self._accumulator.batches_written,
        )

    def _consume(self, line: str) -> None:
        if is_blank(line):
            return
        try:
            fields = parse_line(line)
            if self.state is DriverState.AWAITING_HEADER:
                self.headers = tuple(header.strip() for header in fields)
                self.state = DriverState.STREAMING
                logger.info("Detected %d header(s): %s", len(self.headers), list(self.headers))
                return
            row = build_row(self.headers, fields)
            self._report(self._accumulator.append(row))
        except IngestError as exc:
            if exc.line_number is None:
                exc.line_number = self.line_number
            raise

    def _report(self, written: int) -> None:
        if written:
            logger.info("Processed %d rows so far...", self._accumulator.rows_written)
            try:
                self._on_progress(self._accumulator.rows_written)
            except Exception:
                # A failing callback never aborts the run.
                logger.exception("Progress callback failed")


def process_csv(
    source_path: str | Path,
    store: UserStore,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
) -> ProcessResult:
    """Stream a CSV file into the users table.

    Args:
        source_path: Path to the CSV source.
        store: Persistence handle with tables created.
        batch_size: Rows per batch insert.
        on_progress: Optional cumulative-row-count callback.

    Returns:
        ProcessResult for the run.
    """
    driver = StreamDriver(
        source_path, store, batch_size=batch_size, on_progress=on_progress,
    )
    return driver.run()


def run_pipeline(
    *,
    source_path: str | Path,
    db_path: str | Path = DEFAULT_DB_PATH,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
) -> RunResult:
    """Execute the ingestion pipeline.

    Streams the CSV at source_path into the DuckDB warehouse, then computes
    the age distribution over all persisted users. Tracks the run in the
    ingestion_runs table.

    Args:
        source_path: Path to the CSV source.
        db_path: Path to the DuckDB database file.
        batch_size: Rows per batch insert.
        on_progress: Optional cumulative-row-count callback.

    Returns:
        RunResult with processing statistics and the distribution.
    """
    run_id = uuid.uuid4().hex
    started_at = datetime.now(UTC)
    start_time = time.monotonic()

    result = RunResult(run_id=run_id, source_file=str(source_path))
    logger.info(
        "Starting CSV processing from %s with batch_size=%d ...",
        source_path,
        batch_size,
    )

    with UserStore(db_path) as store:
        store.create_tables()
        with store.connection() as conn:
            create_run(
                conn,
                run_id=run_id,
                source_file=result.source_file,
                started_at=started_at.isoformat(),
            )

        driver = StreamDriver(
            source_path, store, batch_size=batch_size, on_progress=on_progress,
        )
        try:
            processed = driver.run()
            result.processed = processed.processed
            result.headers = processed.headers
            logger.info(
                "CSV processing finished. Total records inserted: %d. Took %.2fs",
                result.processed,
                time.monotonic() - start_time,
            )

            result.distribution = compute_age_distribution(store)
            result.status = RunStatus.COMPLETED
        except Exception as exc:
            logger.exception("Pipeline failed: %s", exc)
            result.status = RunStatus.FAILED
            result.processed = driver.rows_written
            result.elapsed_seconds = time.monotonic() - start_time
            try:
                _finish_run(store, result, error_message=str(exc))
            except Exception:
                logger.exception("Failed to update run record")
            raise

        result.elapsed_seconds = time.monotonic() - start_time
        _finish_run(store, result)

    logger.info(result.summary())
    return result


def _finish_run(
    store: UserStore,
    result: RunResult,
    *,
    error_message: str | None = None,
) -> None:
    with store.connection() as conn:
        complete_run(
            conn,
            run_id=result.run_id,
            status=result.status.value,
            completed_at=datetime.now(UTC).isoformat(),
            rows_processed=result.processed,
            elapsed_seconds=result.elapsed_seconds,
            error_message=error_message,
        )
