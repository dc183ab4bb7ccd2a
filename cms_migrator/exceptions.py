"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class MigratorError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(MigratorError):
    """Raised for issues related to configuration loading or validation."""


class RecordValidationError(MigratorError):
    """Raised when a value type or entity invariant is violated at construction."""


class IllegalTransitionError(MigratorError):
    """Raised when an entity is moved to a state its lifecycle does not allow."""


class SnapshotError(MigratorError):
    """Raised when a snapshot file is missing or cannot be read or written."""


class NavigationError(MigratorError):
    """Raised when a page cannot be reached or stabilized within its timeout."""


class PageError(MigratorError):
    """Raised when the browser fails while reading or changing the current page."""


class DownloadError(MigratorError):
    """Raised when a remote file could not be fetched."""

    def __init__(self, message: str, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class FileUnavailableError(DownloadError):
    """
    Raised when the remote server reports the file as gone (404) or forbidden (403).
    The reference is cleared rather than counted as a failure.
    """


class CreationError(MigratorError):
    """Raised when the destination system rejects a submitted entity."""


class BlankFormTimeoutError(CreationError):
    """Raised when the destination never presents an empty 'create new' form."""
