"""Unit tests for the ingestion error hierarchy."""

from __future__ import annotations

import pytest

from src.ingestion.errors import (
    ConfigError,
    IngestError,
    NotFoundError,
    PersistenceError,
    ReadError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_cls",
    [ConfigError, NotFoundError, ValidationError, PersistenceError, ReadError],
)
def test_all_errors_share_base(error_cls: type[IngestError]) -> None:
    assert issubclass(error_cls, IngestError)


def test_message_without_line_number() -> None:
    assert str(ValidationError("bad age")) == "bad age"


def test_message_with_line_number() -> None:
    error = ValidationError("bad age", line_number=3)
    assert str(error) == "Error at line 3: bad age"


def test_line_number_can_be_attached_later() -> None:
    error = ValidationError("bad age")
    error.line_number = 12
    assert str(error) == "Error at line 12: bad age"
    assert error.message == "bad age"
