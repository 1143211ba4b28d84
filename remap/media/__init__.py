"""
Media capture module for the ReMap pin pipeline.

Main classes:
- MediaCaptureSession: Photos/videos list plus the audio record/play state machine
- MediaItem / AudioItem / MediaSnapshot: Values handed to the uploader

Device boundary:
- PermissionGateway, ImagePicker, AudioDevice, LocationProvider

Errors:
- MediaError: Base exception for the module
- PermissionDeniedError, CaptureError, RecordingError, PlaybackError,
  NoRecordingError, LocationUnavailableError
"""

from .media_capture import AudioState, CaptureSource, MediaCaptureSession
from .media_devices import (
    AudioDevice,
    ImagePicker,
    LocationProvider,
    Permission,
    PermissionGateway,
    PlaybackResource,
    RecordingResource,
)
from .media_errors import (
    CaptureError,
    LocationUnavailableError,
    MediaError,
    NoRecordingError,
    PermissionDeniedError,
    PlaybackError,
    RecordingError,
)
from .media_models import AudioItem, CapturedAsset, MediaItem, MediaKind, MediaSnapshot

__all__ = [
    # Main classes
    "MediaCaptureSession",
    "AudioState",
    "CaptureSource",
    
    # Values
    "MediaItem",
    "MediaKind",
    "AudioItem",
    "CapturedAsset",
    "MediaSnapshot",
    
    # Device boundary
    "PermissionGateway",
    "Permission",
    "ImagePicker",
    "AudioDevice",
    "RecordingResource",
    "PlaybackResource",
    "LocationProvider",
    
    # Errors
    "MediaError",
    "PermissionDeniedError",
    "CaptureError",
    "RecordingError",
    "PlaybackError",
    "NoRecordingError",
    "LocationUnavailableError",
]
