"""Ingestion exception hierarchy.

Every failure that can end an ingestion run is an ``IngestError``
subclass, so callers (CLI, HTTP trigger) can report any of them with a
single ``except`` clause while tests can still assert the precise kind.
"""

from __future__ import annotations


class IngestError(Exception):
    """Base exception for all ingestion failures.

    Attributes:
        message: Human-readable description of the failure.
        line_number: 1-based source line the failure is tied to, if any.
    """

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line_number = line_number

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"Error at line {self.line_number}: {self.message}"


class ConfigError(IngestError):
    """Raised for invalid or missing runtime configuration."""


class NotFoundError(IngestError):
    """Raised when the CSV source does not exist or cannot be opened."""


class ValidationError(IngestError):
    """Raised when a data line breaks a mandatory-field or type rule."""


class PersistenceError(IngestError):
    """Raised when a batch write fails and its transaction is rolled back."""


class ReadError(IngestError):
    """Raised when the input stream fails while lines are being read."""
