"""Structured errors raised while loading filters and sending icon requests."""

from __future__ import annotations
from typing import Any


class IconRequestError(Exception):
    """Base class for icon request issues."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class FilterError(IconRequestError):
    """Base class for appfilter loading failures."""


class FilterOpenError(FilterError):
    """Raised when the appfilter asset cannot be opened."""


class FilterReadError(FilterError):
    """Raised when reading the appfilter fails midway."""


class InvalidDrawableError(FilterError):
    """Raised after a strict parse recorded invalid drawable references.

    The message joins every diagnostic line; the full parse result is kept on
    ``result`` so callers can still inspect the themed components.
    """

    def __init__(self, message: str, *, result: Any = None, context: dict[str, Any] | None = None):
        super().__init__(message, context=context)
        self.result = result


class PreconditionError(IconRequestError):
    """Raised when the request is used or configured incorrectly."""


class IconSaveError(IconRequestError):
    """Raised when an app icon could not be written to the work directory."""


class ManifestWriteError(IconRequestError):
    """Raised when a generated appfilter manifest could not be written."""


class ArchiveError(IconRequestError):
    """Raised when there is nothing to archive or the ZIP could not be created."""


class DeliveryError(IconRequestError):
    """Raised when the email share action for a finished archive fails."""


class UploadError(IconRequestError):
    """Raised when the remote request backend rejects or fails an upload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.status_code = status_code
