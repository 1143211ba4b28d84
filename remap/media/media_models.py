"""
Media value types owned by the capture session and read by the uploader.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class MediaItem:
    """A photo or video held by the draft, in gallery order."""
    local_uri: str
    kind: MediaKind
    display_name: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    def __post_init__(self):
        if self.kind not in (MediaKind.PHOTO, MediaKind.VIDEO):
            raise ValueError(f"MediaItem kind must be photo or video, got {self.kind}")
        if not self.local_uri:
            raise ValueError("MediaItem local_uri cannot be empty")


@dataclass(frozen=True)
class AudioItem:
    """The single voice recording attached to a draft."""
    local_uri: str
    duration_hint: Optional[float] = None
    display_name: str = "Audio recording"


@dataclass(frozen=True)
class CapturedAsset:
    """What the device picker hands back for one photo or video."""
    uri: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class MediaSnapshot:
    """Read-only view of everything the session holds."""
    photos: Tuple[MediaItem, ...] = ()
    videos: Tuple[MediaItem, ...] = ()
    audio: Optional[AudioItem] = None

    @property
    def total_items(self) -> int:
        return len(self.photos) + len(self.videos) + (1 if self.audio else 0)
