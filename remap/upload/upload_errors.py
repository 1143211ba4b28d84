"""
Exception classes for the upload module.

Every failure of an upload run is reported through one of these, then
folded into an UploadResult by the orchestrator.
"""

from typing import List


class UploadError(Exception):
    """Base exception for upload module."""
    pass


class DraftValidationError(UploadError):
    """The draft breaks one or more submission rules. Raised before any network call."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__(self.problems[0] if self.problems else "Draft is invalid")


class AuthenticationError(UploadError):
    """No valid access credential could be obtained."""
    pass


class MediaUploadError(UploadError):
    """A single media file could not be uploaded."""

    def __init__(self, message: str, item=None):
        self.item = item
        super().__init__(message)


class PinPersistenceError(UploadError):
    """The backend refused or failed to create the pin record."""
    pass


class UploadInProgressError(UploadError):
    """A second run was started while one is still in flight."""
    pass


class ServiceError(UploadError):
    """Transport or HTTP failure talking to storage, identity or the pin backend."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)
