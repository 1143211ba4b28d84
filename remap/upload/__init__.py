"""
Upload module for the ReMap pin pipeline.

This module provides functionality for:
- Validating a finalized pin draft before any network activity
- Uploading photos, videos and audio to object storage concurrently
- Aggregating per-file completion into a single progress percentage
- Persisting the pin record once every media file is stored

Main classes:
- UploadOrchestrator: Runs one submission end to end
- ProgressTracker: Fixed-step progress aggregation
- SupabaseStorage / SupabaseIdentity / SupabasePinBackend: HTTP collaborators

Errors:
- UploadError: Base for every run failure
- DraftValidationError, AuthenticationError, MediaUploadError,
  PinPersistenceError, UploadInProgressError, ServiceError
"""

from .upload_config import UploadConfig
from .upload_errors import (
    AuthenticationError,
    DraftValidationError,
    MediaUploadError,
    PinPersistenceError,
    ServiceError,
    UploadError,
    UploadInProgressError,
)
from .upload_models import (
    AccessCredential,
    CreatePinRequest,
    UploadProgress,
    UploadResult,
    UploadStatus,
    UploadTask,
)
from .upload_orchestrator import UploadOrchestrator
from .upload_progress import ProgressTracker, progress_percentage
from .upload_services import (
    IdentityProvider,
    ObjectStorage,
    PinBackend,
    SupabaseIdentity,
    SupabasePinBackend,
    SupabaseStorage,
)

__all__ = [
    # Main classes
    "UploadOrchestrator",
    "ProgressTracker",
    "progress_percentage",
    "UploadConfig",

    # Collaborators
    "ObjectStorage",
    "IdentityProvider",
    "PinBackend",
    "SupabaseStorage",
    "SupabaseIdentity",
    "SupabasePinBackend",

    # Value types
    "UploadTask",
    "UploadStatus",
    "UploadProgress",
    "UploadResult",
    "AccessCredential",
    "CreatePinRequest",

    # Errors
    "UploadError",
    "DraftValidationError",
    "AuthenticationError",
    "MediaUploadError",
    "PinPersistenceError",
    "UploadInProgressError",
    "ServiceError",
]
