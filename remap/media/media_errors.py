"""
Custom exceptions for the media capture module.

Every condition here is recoverable: the capture session stays usable
after any of them is raised.
"""


class MediaError(Exception):
    """Base exception for media capture."""
    pass


class PermissionDeniedError(MediaError):
    """The user refused a device permission (camera, microphone, location)."""

    def __init__(self, permission: str, message: str = None):
        self.permission = permission
        super().__init__(message or f"{permission} permission denied")


class CaptureError(MediaError):
    """Taking a photo or picking from the library failed."""
    pass


class RecordingError(MediaError):
    """Starting or stopping an audio recording failed."""
    pass


class PlaybackError(MediaError):
    """Loading or playing the recorded audio failed."""
    pass


class NoRecordingError(PlaybackError):
    """Playback was requested before anything was recorded."""
    pass


class LocationUnavailableError(MediaError):
    """The device could not produce a position fix."""
    pass
