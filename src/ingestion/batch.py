"""In-memory batching of Normalized Rows in front of the batch writer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from src.ingestion.models import NormalizedRow

DEFAULT_BATCH_SIZE: int = 1000

BatchWriter = Callable[[Sequence[NormalizedRow]], int]

logger = logging.getLogger("ingest_users")


class BatchAccumulator:
    """Buffer rows and hand them to a writer one full batch at a time.

    Writes happen synchronously inside ``append``/``flush``, so a batch is
    never being written while another row is appended to it. One instance
    serves exactly one run.

    Attributes:
        batch_size: Row count that triggers a write.
        rows_written: Cumulative rows handed to the writer.
        batches_written: Number of writer calls made.
    """

    def __init__(self, writer: BatchWriter, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        """Initialize the accumulator.

        Args:
            writer: Callable persisting one batch; must raise on failure.
            batch_size: Positive row threshold for a write.

        Raises:
            ValueError: If batch_size is not a positive integer.
        """
        if batch_size < 1:
            msg = f"Batch size must be a positive integer, got {batch_size}"
            raise ValueError(msg)
        self.batch_size = batch_size
        self.rows_written = 0
        self.batches_written = 0
        self._writer = writer
        self._rows: list[NormalizedRow] = []
        self._closed = False

    @property
    def pending(self) -> int:
        """Rows buffered but not yet written."""
        return len(self._rows)

    def append(self, row: NormalizedRow) -> int:
        """Add a row, writing the batch once it reaches the threshold.

        Args:
            row: Row to buffer.

        Returns:
            Number of rows written by this call (0 when no write happened).

        Raises:
            RuntimeError: If the accumulator was already flushed.
        """
        if self._closed:
            msg = "Cannot append to a batch accumulator after flush()"
            raise RuntimeError(msg)
        self._rows.append(row)
        if len(self._rows) >= self.batch_size:
            return self._write()
        return 0

    def flush(self) -> int:
        """Write any partial batch and close the accumulator.

        Returns:
            Number of rows written by this call.
        """
        if self._closed:
            msg = "flush() may only be called once per batch accumulator"
            raise RuntimeError(msg)
        self._closed = True
        if not self._rows:
            return 0
        return self._write()

    def _write(self) -> int:
        # Cleared only after the writer returns without raising.
        batch = self._rows
        self._writer(batch)
        self._rows = []
        self.rows_written += len(batch)
        self.batches_written += 1
        logger.debug("Wrote batch %d (%d rows)", self.batches_written, len(batch))
        return len(batch)
