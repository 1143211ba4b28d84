"""
Data types for one upload run.

UploadTask and UploadProgress only live for the duration of a run;
CreatePinRequest is the payload handed to the pin backend.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..media.media_models import MediaKind


# Storage folder per media kind, under the owner's prefix
STORAGE_FOLDERS = {
    MediaKind.PHOTO: "images",
    MediaKind.VIDEO: "videos",
    MediaKind.AUDIO: "audio",
}


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadTask:
    """One media file within an upload run."""
    task_id: str
    kind: MediaKind
    local_uri: str
    label: str
    mime_type: Optional[str] = None
    status: UploadStatus = UploadStatus.PENDING
    object_path: Optional[str] = None
    remote_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def folder(self) -> str:
        return STORAGE_FOLDERS[self.kind]


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot emitted after every completed step of a run."""
    total_steps: int
    completed_steps: int
    current_label: str
    percentage: int


@dataclass
class UploadResult:
    """Outcome of a run, returned instead of raising."""
    success: bool
    pin_id: Optional[str] = None
    error: Optional[str] = None
    uploaded_urls: List[str] = field(default_factory=list)
    problems: List[str] = field(default_factory=list)

    @classmethod
    def succeeded(cls, pin_id: str, uploaded_urls: List[str]) -> "UploadResult":
        return cls(success=True, pin_id=pin_id, uploaded_urls=list(uploaded_urls))

    @classmethod
    def failed(cls, error: str, problems: List[str] = None) -> "UploadResult":
        return cls(success=False, error=error, problems=list(problems or [error]))


@dataclass(frozen=True)
class AccessCredential:
    """Current session token and the user it belongs to."""
    token: str
    user_id: str


class CreatePinRequest(BaseModel):
    """Row sent to the pin backend once every media file is stored."""
    name: str = Field(min_length=1)
    description: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    location_query: str = ""
    visibility: List[str] = Field(min_length=1)
    social_circle_ids: List[str] = Field(default_factory=list)
    image_urls: Optional[List[str]] = None
    audio_url: Optional[str] = None
    owner_id: str
