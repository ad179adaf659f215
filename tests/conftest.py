"""Shared test fixtures for the CSV user ingestion pipeline."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from src.ingestion.errors import PersistenceError
from src.ingestion.loader import UserStore
from src.ingestion.models import NormalizedRow

SAMPLE_CSV: str = (
    "name.firstName,name.lastName,age,address.line1,address.city,gender\n"
    "Rohit,Prasad,35,A-563 Rakshak Society,Pune,male\n"
    "Anita,Sharma,17,12 MG Road,Bengaluru,female\n"
    '"Jean ""JJ""",Dupont,62,"4, Rue de Rivoli",Paris,\n'
    "Mei,Lin,48,,,female\n"
    "Tom,Hardy,20,,,\n"
)


class RecordingStore:
    """Stand-in for UserStore that records each batch it is asked to write."""

    def __init__(self, fail_on_batch: int | None = None) -> None:
        self.batches: list[list[NormalizedRow]] = []
        self._fail_on_batch = fail_on_batch

    def write_batch(self, rows: Sequence[NormalizedRow]) -> int:
        if self._fail_on_batch is not None and len(self.batches) + 1 == self._fail_on_batch:
            raise PersistenceError("simulated write failure")
        self.batches.append(list(rows))
        return len(rows)

    @property
    def rows(self) -> list[NormalizedRow]:
        return [row for batch in self.batches for row in batch]


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary DuckDB database file path.

    Args:
        tmp_path: Pytest built-in temporary directory fixture.

    Returns:
        Path to a temporary DuckDB database file.
    """
    db_dir = tmp_path / "warehouse"
    db_dir.mkdir(parents=True)
    return db_dir / "test.duckdb"


@pytest.fixture
def tmp_source_dir(tmp_path: Path) -> Path:
    """Provide a temporary source directory for CSV files.

    Args:
        tmp_path: Pytest built-in temporary directory fixture.

    Returns:
        Path to a temporary source directory.
    """
    source_dir = tmp_path / "data" / "raw"
    source_dir.mkdir(parents=True)
    return source_dir


@pytest.fixture
def write_csv(tmp_source_dir: Path) -> Callable[..., Path]:
    """Provide a helper that writes CSV text into the source directory.

    Returns:
        Callable taking the file content (and optional name) and
        returning the written path.
    """

    def _write(content: str, name: str = "users.csv") -> Path:
        path = tmp_source_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_csv_file(write_csv: Callable[..., Path]) -> Path:
    """Write a small valid users CSV (header + 5 rows) and return its path."""
    return write_csv(SAMPLE_CSV)


@pytest.fixture
def recording_store() -> RecordingStore:
    """Provide an in-memory batch recorder."""
    return RecordingStore()


@pytest.fixture
def failing_store_factory() -> Callable[[int], RecordingStore]:
    """Provide a factory for recorders whose Nth batch write fails."""

    def _make(fail_on_batch: int) -> RecordingStore:
        return RecordingStore(fail_on_batch=fail_on_batch)

    return _make


@pytest.fixture
def user_store(tmp_db_path: Path) -> UserStore:
    """Provide a UserStore on a temporary database with tables created.

    Yields:
        An open UserStore.
    """
    store = UserStore(tmp_db_path)
    store.create_tables()
    yield store
    store.close()
