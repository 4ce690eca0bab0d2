# src/errors.py

from typing import Any, Optional


class SyncError(Exception):
    """Base class for everything the Swiss Unihockey sync raises on purpose."""

    def __init__(self, message: str, swiss_id: Optional[Any] = None):
        super().__init__(message)
        self.message    = message
        self.swiss_id   = swiss_id

    def __str__(self) -> str:
        if self.swiss_id is None:
            return self.message
        return f"{self.message} (swiss_id: {self.swiss_id})"


class FetchError(SyncError):
    """API unreachable, timed out, non-2xx or unparseable. Aborts the current phase before any write."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url            = url
        self.status_code    = status_code


class WriteError(SyncError):
    """A single insert/update/delete failed. The item is skipped, the run continues."""


class DataShapeError(SyncError):
    """An external item misses a required field (e.g. no external id). Never written."""


class SyncLockedError(SyncError):
    """Another sync run holds the run lock."""
