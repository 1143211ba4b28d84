"""
Device API boundary for the capture session.

The host platform binds these abstract classes to its camera, image
picker, microphone, audio player and location services. Every method
that talks to the device is a coroutine because the platform call is a
suspension point.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional, Tuple

from .media_models import CapturedAsset


class Permission(str, Enum):
    CAMERA = "camera"
    MICROPHONE = "microphone"
    LOCATION = "location"


class PermissionGateway(ABC):
    """Asks the user for device permissions."""

    @abstractmethod
    async def request_permission(self, permission: Permission) -> bool:
        """Return True when granted, False when denied."""
        pass


class ImagePicker(ABC):
    """Live camera capture and library selection."""

    @abstractmethod
    async def launch_camera(self) -> Optional[CapturedAsset]:
        """Capture with the camera; None when the user cancels."""
        pass

    @abstractmethod
    async def launch_library(self) -> Optional[CapturedAsset]:
        """Pick from the photo library; None when the user cancels."""
        pass


class RecordingResource(ABC):
    """One open microphone recording."""

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> str:
        """Finalize the recording and return its local file URI."""
        pass

    @abstractmethod
    async def release(self) -> None:
        """Free the resource whether or not it was stopped."""
        pass


class PlaybackResource(ABC):
    """One loaded audio file."""

    @abstractmethod
    async def play(self, on_complete: Callable[[], None]) -> None:
        """Start playback; ``on_complete`` fires if it finishes by itself."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @abstractmethod
    async def unload(self) -> None:
        pass


class AudioDevice(ABC):
    """Factory for recording and playback resources."""

    @abstractmethod
    async def open_recording(self) -> RecordingResource:
        pass

    @abstractmethod
    async def load_playback(self, uri: str) -> PlaybackResource:
        pass


class LocationProvider(ABC):
    """Foreground location access."""

    @abstractmethod
    async def request_permission(self) -> bool:
        pass

    @abstractmethod
    async def get_current_position(self) -> Tuple[float, float]:
        """
        Return the (latitude, longitude) fix.
        
        Raises:
            LocationUnavailableError: When no fix can be obtained
        """
        pass
