"""
Configuration for the upload module.
"""

from dataclasses import dataclass
from typing import Optional

from ..config.config_module import get_config, get_config_bool, get_config_int
from ..media.media_models import MediaKind


@dataclass
class UploadConfig:
    """Backend endpoints, storage layout and submission rules."""
    
    # Supabase project URL and public anon key
    supabase_url: str = ""
    anon_key: str = ""
    
    # Logical bucket per media kind
    image_bucket: str = "memory-media"
    video_bucket: str = "memory-media"
    audio_bucket: str = "memory-media"
    
    pins_table: str = "pins"
    
    # Draft rules checked before any network activity
    title_max_length: int = 100
    description_max_length: int = 500
    
    # None uploads every item of a run at once
    max_parallel_uploads: Optional[int] = None
    
    # Delete objects uploaded by a failed run
    cleanup_orphans: bool = True
    cleanup_attempts: int = 3
    cleanup_backoff_seconds: float = 0.5
    
    request_timeout: int = 30
    
    def __post_init__(self):
        """Validate configuration values."""
        if self.title_max_length < 1:
            raise ValueError(
                f"title_max_length must be positive, got {self.title_max_length}"
            )
        
        if self.description_max_length < 1:
            raise ValueError(
                f"description_max_length must be positive, got {self.description_max_length}"
            )
        
        if self.max_parallel_uploads is not None and self.max_parallel_uploads < 1:
            raise ValueError(
                f"max_parallel_uploads must be at least 1, got {self.max_parallel_uploads}"
            )
        
        if self.cleanup_backoff_seconds < 0:
            raise ValueError(
                f"cleanup_backoff_seconds cannot be negative, got {self.cleanup_backoff_seconds}"
            )
        
        if self.cleanup_attempts < 1:
            raise ValueError(
                f"cleanup_attempts must be at least 1, got {self.cleanup_attempts}"
            )
        
        for name in ("image_bucket", "video_bucket", "audio_bucket"):
            if not getattr(self, name):
                raise ValueError(f"{name} cannot be empty")
    
    def bucket_for(self, kind: MediaKind) -> str:
        """Bucket that stores media of the given kind."""
        return {
            MediaKind.PHOTO: self.image_bucket,
            MediaKind.VIDEO: self.video_bucket,
            MediaKind.AUDIO: self.audio_bucket,
        }[kind]
    
    @classmethod
    def from_env(cls) -> "UploadConfig":
        """Build the configuration from environment variables."""
        defaults = cls()
        bucket = get_config("REMAP_MEDIA_BUCKET", defaults.image_bucket)
        return cls(
            supabase_url=get_config("SUPABASE_URL", defaults.supabase_url),
            anon_key=get_config("SUPABASE_ANON_KEY", defaults.anon_key),
            image_bucket=bucket,
            video_bucket=bucket,
            audio_bucket=bucket,
            max_parallel_uploads=get_config_int("REMAP_MAX_PARALLEL_UPLOADS"),
            cleanup_orphans=get_config_bool("REMAP_CLEANUP_ORPHANS", defaults.cleanup_orphans),
        )
