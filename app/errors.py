"""
Exceptions raised across the submission ingestion pipeline.
"""

from __future__ import annotations


class IngestionError(RuntimeError):
    """Base exception for submission ingestion failures."""


class SourceUnavailableError(IngestionError):
    """Raised when the spreadsheet cannot be authenticated against or read."""


class DownloadFailedError(IngestionError):
    """Raised when an attachment URL cannot be retrieved."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class InsertFailedError(IngestionError):
    """Raised when a submission cannot be written or committed."""


class ClearFailedError(IngestionError):
    """Raised internally when clearing consumed spreadsheet rows fails."""


class TransactionInProgressError(IngestionError):
    """Raised when a second batch transaction is opened while one is active."""
