"""
Upload orchestrator for pin submission.

One run takes an immutable draft snapshot through:
1. Validate the draft (no network activity on failure)
2. Obtain an access credential
3. Upload every photo, video and the audio clip concurrently
4. Create the pin record referencing the uploaded URLs

Progress is reported after every completed step. Any failure fails the
whole run: no pin is created with partial media, and objects already
uploaded by the run are deleted again when orphan cleanup is enabled.
"""

import asyncio
from typing import Callable, List, Optional

from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config.logger_module import log_info, log_warning, log_error
from ..geocoding.geocoding_models import coordinate_error
from ..media.media_models import MediaKind, MediaSnapshot
from ..pin.pin_draft import PinDraftSnapshot
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
from .upload_progress import ProgressTracker
from .upload_services import (
    IdentityProvider,
    ObjectStorage,
    PinBackend,
    build_object_path,
    guess_content_type,
    read_local_file,
)


class UploadOrchestrator:
    """
    Runs pin submissions against storage, identity and pin backend collaborators.

    Only one run may be in flight per orchestrator.
    """

    def __init__(self,
                 storage: ObjectStorage,
                 identity: IdentityProvider,
                 backend: PinBackend,
                 config: UploadConfig = None,
                 read_file: Callable[[str], bytes] = read_local_file):
        """
        Initialize the orchestrator.

        Args:
            storage: Object storage for media files
            identity: Source of the access credential
            backend: Pin persistence backend
            config: Upload configuration (defaults if None)
            read_file: Reads a local media URI into bytes
        """
        self.storage = storage
        self.identity = identity
        self.backend = backend
        self.config = config or UploadConfig()
        self.read_file = read_file
        self._in_flight = False

        log_info(
            f"UploadOrchestrator initialized "
            f"(max_parallel_uploads={self.config.max_parallel_uploads or 'unbounded'}, "
            f"cleanup_orphans={self.config.cleanup_orphans})"
        )

    @property
    def is_uploading(self) -> bool:
        return self._in_flight

    # ---- validation -------------------------------------------------

    def validate_draft(self, draft: PinDraftSnapshot) -> List[str]:
        """
        Check the draft against the submission rules.

        Returns:
            Every violated rule as a user-facing message, empty if valid
        """
        problems = []

        title = (draft.title or "").strip()
        if not title:
            problems.append("Please add a title for your memory.")
        elif len(title) > self.config.title_max_length:
            problems.append(
                f"Title must be {self.config.title_max_length} characters or fewer."
            )

        description = (draft.description or "").strip()
        if not description:
            problems.append("Please add a description for your memory.")
        elif len(description) > self.config.description_max_length:
            problems.append(
                f"Description must be {self.config.description_max_length} characters or fewer."
            )

        if draft.coordinate is None:
            problems.append("Please select a location for your memory.")
        elif coordinate_error(draft.coordinate.lat, draft.coordinate.lng):
            problems.append("Please select a valid location or try a different search term.")

        if not draft.visibility:
            problems.append("Please select who can see this memory.")

        return problems

    def ensure_valid(self, draft: PinDraftSnapshot) -> None:
        """Raise DraftValidationError listing every violated rule."""
        problems = self.validate_draft(draft)
        if problems:
            raise DraftValidationError(problems)

    # ---- run --------------------------------------------------------

    @staticmethod
    def build_tasks(media: MediaSnapshot) -> List[UploadTask]:
        """One task per media file: photos, then videos, then the audio clip."""
        tasks = []
        for index, photo in enumerate(media.photos):
            tasks.append(UploadTask(
                task_id=f"photo-{index}",
                kind=MediaKind.PHOTO,
                local_uri=photo.local_uri,
                label=photo.display_name,
                mime_type=photo.mime_type,
            ))
        for index, video in enumerate(media.videos):
            tasks.append(UploadTask(
                task_id=f"video-{index}",
                kind=MediaKind.VIDEO,
                local_uri=video.local_uri,
                label=video.display_name,
                mime_type=video.mime_type,
            ))
        if media.audio is not None:
            tasks.append(UploadTask(
                task_id="audio",
                kind=MediaKind.AUDIO,
                local_uri=media.audio.local_uri,
                label=media.audio.display_name,
            ))
        return tasks

    async def submit(self,
                     draft: PinDraftSnapshot,
                     on_progress: Callable[[UploadProgress], None] = None) -> UploadResult:
        """
        Run one complete submission.

        Args:
            draft: Immutable snapshot of the draft
            on_progress: Receives a snapshot after every completed step

        Returns:
            UploadResult with the pin id on success, or the first error

        Raises:
            UploadInProgressError: If a run is already in flight
        """
        if self._in_flight:
            raise UploadInProgressError("An upload is already in progress")

        self._in_flight = True
        try:
            return await self._run(draft, on_progress)
        finally:
            self._in_flight = False

    async def _run(self, draft, on_progress) -> UploadResult:
        try:
            self.ensure_valid(draft)
        except DraftValidationError as e:
            log_warning(f"Draft rejected: {'; '.join(e.problems)}")
            return UploadResult.failed(str(e), e.problems)

        tasks = self.build_tasks(draft.media)
        tracker = ProgressTracker(len(tasks) + 1, on_progress)
        tracker.start()
        log_info(f"Starting upload run: {len(tasks)} media files")

        try:
            credential = await self._authenticate()
        except AuthenticationError as e:
            log_error(f"Upload aborted: {e}")
            return UploadResult.failed(str(e))

        try:
            await self._upload_media(tasks, credential, tracker)
            request = self._build_request(draft, tasks, credential)
            pin_id = await self._persist(request, credential)
        except UploadError as e:
            log_error(f"Upload run failed: {e}")
            await self._discard_orphans(tasks, credential)
            return UploadResult.failed(str(e))

        tracker.complete_final()
        log_info(f"Pin {pin_id} created with {len(tasks)} media files")
        return UploadResult.succeeded(pin_id, [task.remote_url for task in tasks])

    async def _authenticate(self) -> AccessCredential:
        try:
            credential = await asyncio.to_thread(self.identity.get_access_token)
        except ServiceError as e:
            raise AuthenticationError(f"Could not verify sign-in: {e}") from e
        except Exception as e:
            log_error(f"Unexpected error verifying sign-in: {e}")
            raise AuthenticationError(f"Could not verify sign-in: {e}") from e

        if credential is None or not credential.token:
            raise AuthenticationError("User not authenticated")

        log_info(f"User authenticated: {credential.user_id}")
        return credential

    # ---- media ------------------------------------------------------

    async def _upload_media(self,
                            tasks: List[UploadTask],
                            credential: AccessCredential,
                            tracker: ProgressTracker) -> None:
        """
        Upload every task concurrently, bounded by max_parallel_uploads.

        After the first failure no further upload starts and no further
        progress is reported; uploads already running finish normally.

        Raises:
            MediaUploadError: The first failure
        """
        limit = self.config.max_parallel_uploads
        semaphore = asyncio.Semaphore(limit) if limit else None
        failures: List[MediaUploadError] = []

        async def run_task(task: UploadTask) -> None:
            if failures:
                log_info(f"Skipping {task.label}: run already failed")
                return
            try:
                await self._upload_one(task, credential)
            except MediaUploadError as e:
                failures.append(e)
                return
            if not failures:
                tracker.complete(task.task_id, task.label)

        async def run_bounded(task: UploadTask) -> None:
            if semaphore is None:
                await run_task(task)
                return
            async with semaphore:
                await run_task(task)

        # Every sibling settles before the run moves on, failed or not.
        outcomes = await asyncio.gather(
            *(run_bounded(task) for task in tasks), return_exceptions=True
        )

        if failures:
            raise failures[0]
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                raise MediaUploadError(f"Media upload failed: {outcome}") from outcome

    async def _upload_one(self, task: UploadTask, credential: AccessCredential) -> None:
        task.status = UploadStatus.UPLOADING
        task.object_path = build_object_path(credential.user_id, task.folder, task.local_uri)
        bucket = self.config.bucket_for(task.kind)

        try:
            data = await asyncio.to_thread(self.read_file, task.local_uri)
            task.remote_url = await asyncio.to_thread(
                self.storage.upload,
                data,
                bucket,
                task.object_path,
                credential.token,
                guess_content_type(task.local_uri, task.mime_type),
            )
        except (ServiceError, OSError) as e:
            task.status = UploadStatus.FAILED
            task.error = str(e)
            log_error(f"{task.folder} upload failed for {task.label}: {e}")
            raise MediaUploadError(f"Failed to upload {task.label}: {e}", item=task) from e
        except Exception as e:
            task.status = UploadStatus.FAILED
            task.error = str(e)
            log_error(f"Unexpected error uploading {task.label}: {e}")
            raise MediaUploadError(f"Failed to upload {task.label}: {e}", item=task) from e

        task.status = UploadStatus.DONE
        log_info(f"Uploaded {task.kind.value} {task.label}")

    async def _discard_orphans(self, tasks: List[UploadTask], credential: AccessCredential) -> None:
        uploaded = [task for task in tasks if task.status == UploadStatus.DONE]
        if not uploaded:
            return

        if not self.config.cleanup_orphans:
            log_warning(f"Leaving {len(uploaded)} uploaded objects from the failed run in storage")
            return

        for task in uploaded:
            bucket = self.config.bucket_for(task.kind)
            try:
                await asyncio.to_thread(
                    self._delete_object, bucket, task.object_path, credential.token
                )
            except Exception as e:
                log_warning(f"Could not delete orphaned object {bucket}/{task.object_path}: {e}")

    def _delete_object(self, bucket: str, path: str, token: str) -> None:
        for attempt in Retrying(
            stop=stop_after_attempt(self.config.cleanup_attempts),
            wait=wait_exponential(multiplier=self.config.cleanup_backoff_seconds, max=4),
            retry=retry_if_exception_type(ServiceError),
            reraise=True,
        ):
            with attempt:
                self.storage.delete(bucket, path, token)

    # ---- persistence ------------------------------------------------

    def _build_request(self,
                       draft: PinDraftSnapshot,
                       tasks: List[UploadTask],
                       credential: AccessCredential) -> CreatePinRequest:
        # Videos share the image_urls column with photos.
        image_urls = [task.remote_url for task in tasks if task.kind != MediaKind.AUDIO]
        audio_url: Optional[str] = next(
            (task.remote_url for task in tasks if task.kind == MediaKind.AUDIO), None
        )

        try:
            return CreatePinRequest(
                name=draft.title.strip(),
                description=draft.description.strip(),
                latitude=draft.coordinate.lat,
                longitude=draft.coordinate.lng,
                location_query=(draft.location_query or "").strip() or draft.coordinate.address,
                visibility=draft.visibility_values,
                social_circle_ids=list(draft.social_circle_ids),
                image_urls=image_urls or None,
                audio_url=audio_url,
                owner_id=credential.user_id,
            )
        except ValidationError as e:
            raise PinPersistenceError(f"Pin payload rejected: {e}") from e

    async def _persist(self, request: CreatePinRequest, credential: AccessCredential) -> str:
        log_info("Creating pin in database...")
        try:
            return await asyncio.to_thread(self.backend.create_pin, request, credential.token)
        except ServiceError as e:
            raise PinPersistenceError(f"Failed to create pin: {e}") from e
        except Exception as e:
            log_error(f"Unexpected error creating pin: {e}")
            raise PinPersistenceError(f"Failed to create pin: {e}") from e
