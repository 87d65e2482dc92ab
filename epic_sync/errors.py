"""
Error types raised by the EPIC sync pipeline.

Whole-run failures (catalog or mirror unreachable) propagate out of
`run_sync`; per-item failures are caught there and recorded in the
report instead.
"""


class EpicSyncError(Exception):
    """Base class for every error raised by epic_sync."""


class TransportError(EpicSyncError):
    """Network failure or non-2xx response from an endpoint."""

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(EpicSyncError):
    """Response body is not valid JSON or does not have the expected shape."""


class TimeParseError(ParseError):
    """Capture timestamp does not match YYYY-MM-DD HH:MM:SS."""


class StorageError(EpicSyncError, OSError):
    """Destination file could not be created or written."""


class ResizeError(EpicSyncError):
    """The external ffmpeg process failed."""
