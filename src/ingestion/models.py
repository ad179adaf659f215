"""Ingestion domain models for rows, run tracking and the age distribution."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union

# A Nested Record leaf is a string or None; inner nodes are mappings.
NestedValue = Union[str, None, dict[str, "NestedValue"]]
NestedRecord = dict[str, NestedValue]

# Age buckets in report order. 40-60 covers ages 41..60.
AGE_BUCKETS: tuple[str, ...] = ("<20", "20-40", "40-60", ">60")


class RunStatus(enum.Enum):
    """Status of a pipeline execution run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class DriverState(enum.Enum):
    """Lifecycle of a single stream driver over one source."""

    AWAITING_HEADER = "awaiting_header"
    STREAMING = "streaming"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class NormalizedRow:
    """A validated user row ready to be written to the ``users`` table.

    Attributes:
        name: ``firstName`` and ``lastName`` joined by a single space.
        age: Integer age.
        address: The ``address`` subtree, or None when absent.
        additional_info: Every other top-level key, or None when empty.
    """

    name: str
    age: int
    address: dict[str, Any] | None = None
    additional_info: dict[str, Any] | None = None


@dataclass
class ProcessResult:
    """Outcome of streaming one CSV source into the store.

    Attributes:
        processed: Number of rows written to the store.
        headers: Header List captured from the first non-blank line.
        lines_read: Physical lines consumed, blank lines included.
        batches_written: Number of batch inserts performed.
    """

    processed: int = 0
    headers: tuple[str, ...] = ()
    lines_read: int = 0
    batches_written: int = 0


@dataclass
class AgeDistribution:
    """Row counts and rounded percentages per age bucket.

    Percentages are rounded independently, so they may sum to 99 or 101.

    Attributes:
        total: Total number of rows counted.
        counts: Row count per bucket label.
        percentages: Integer percentage of ``total`` per bucket label.
    """

    total: int = 0
    counts: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(AGE_BUCKETS, 0)
    )
    percentages: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(AGE_BUCKETS, 0)
    )

    def summary(self) -> str:
        """Generate a human-readable distribution report.

        Returns:
            Formatted multi-line report.
        """
        labels = {
            "<20": "< 20",
            "20-40": "20 to 40",
            "40-60": "40 to 60",
            ">60": "> 60",
        }
        lines = ["===== Age-Group % Distribution ====="]
        for bucket in AGE_BUCKETS:
            lines.append(f"{labels[bucket]}: {self.percentages[bucket]}%")
        lines.append("====================================")
        return "\n".join(lines)


@dataclass
class RunResult:
    """Aggregate result of a pipeline execution run.

    Attributes:
        run_id: Unique identifier for this pipeline run.
        source_file: Path of the CSV source.
        status: Final status of the run.
        processed: Rows written during this run.
        headers: Header List of the source.
        distribution: Age distribution over the whole ``users`` table.
        elapsed_seconds: Total run duration in seconds.
    """

    run_id: str
    source_file: str
    status: RunStatus = RunStatus.RUNNING
    processed: int = 0
    headers: tuple[str, ...] = ()
    distribution: AgeDistribution = field(default_factory=AgeDistribution)
    elapsed_seconds: float = 0.0

    def to_response(self) -> dict[str, Any]:
        """Shape the result for the HTTP trigger response body.

        Returns:
            JSON-serializable dict.
        """
        return {
            "processed": self.processed,
            "headers": list(self.headers),
            "totalUsersInDB": self.distribution.total,
            "distributionPercentages": dict(self.distribution.percentages),
        }

    def summary(self) -> str:
        """Generate a human-readable run summary.

        Returns:
            Formatted summary string.
        """
        return (
            f"Pipeline Run Summary ({self.run_id}):\n"
            f"  Status:          {self.status.value}\n"
            f"  Source:          {self.source_file}\n"
            f"  Rows processed:  {self.processed}\n"
            f"  Users in store:  {self.distribution.total}\n"
            f"  Elapsed time:    {self.elapsed_seconds:.2f}s"
        )
