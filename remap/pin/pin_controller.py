"""
Coordinator for one pin creation session.

Owns the PinDraft, routes geocoding and media updates into it, and runs
the preview -> confirm -> success / failure life cycle. Outcomes are
returned to the UI as Notice values rather than raised, so the caller
decides how to render them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Mapping, Optional, Tuple

from ..config.logger_module import log_info, log_warning, log_error
from ..geocoding.geocoding_models import Coordinate
from ..geocoding.geocoding_resolver import GeocodingResolver
from ..media.media_capture import CaptureSource, MediaCaptureSession
from ..media.media_devices import LocationProvider
from ..media.media_errors import LocationUnavailableError, MediaError, PermissionDeniedError
from ..media.media_models import MediaSnapshot
from ..upload.upload_errors import DraftValidationError, UploadInProgressError
from ..upload.upload_models import UploadProgress, UploadResult
from ..upload.upload_orchestrator import UploadOrchestrator
from .pin_draft import PinDraft, Visibility


class DraftStage(str, Enum):
    EDITING = "editing"
    PREVIEWING = "previewing"
    SAVING = "saving"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class NoticeType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A message for the UI to show."""
    type: NoticeType
    title: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.type == NoticeType.ERROR


@dataclass(frozen=True)
class PinPreview:
    """Read-only summary shown before the user confirms."""
    title: str
    description: str
    location_label: str
    coordinate: Coordinate
    visibility: Tuple[str, ...]
    visibility_description: str
    social_circle_ids: Tuple[str, ...]
    media: MediaSnapshot
    total_media_items: int
    has_description: bool
    created_at: datetime


class PinDraftController:
    """
    Wires GeocodingResolver, MediaCaptureSession and UploadOrchestrator
    around a single PinDraft.
    """

    def __init__(self,
                 resolver: GeocodingResolver,
                 media: MediaCaptureSession,
                 orchestrator: UploadOrchestrator,
                 draft: PinDraft = None,
                 circle_names: Mapping[str, str] = None):
        """
        Initialize the controller and attach the component callbacks.

        Args:
            resolver: Location resolver for this session
            media: Media capture session for this session
            orchestrator: Upload orchestrator
            draft: Draft to edit (a fresh one if None)
            circle_names: Social circle id -> name, for descriptions
        """
        self.resolver = resolver
        self.media = media
        self.orchestrator = orchestrator
        self.draft = draft or PinDraft()
        self.circle_names = dict(circle_names or {})

        self.resolver.on_update = self.draft.set_coordinate
        self.media.on_change = self.draft.set_media

        self.stage = DraftStage.EDITING
        self.preview_data: Optional[PinPreview] = None
        self.progress: Optional[UploadProgress] = None
        self.last_result: Optional[UploadResult] = None

    # ---- content ----------------------------------------------------

    def set_title(self, title: str) -> None:
        self.draft.set_title(title)

    def set_description(self, description: str) -> None:
        self.draft.set_description(description)

    def toggle_visibility(self, option: Visibility) -> None:
        self.draft.toggle_visibility(option)

    def toggle_social_circle(self, circle_id: str) -> None:
        self.draft.toggle_social_circle(circle_id)

    def visibility_description(self) -> str:
        return self.draft.visibility_description(self.circle_names)

    # ---- location ---------------------------------------------------

    def on_location_text_changed(self, text: str) -> None:
        """Keep the typed text and hand it to the debounced resolver."""
        self.draft.set_location_query(text)
        self.resolver.on_query_text_changed(text)

    def drop_pin(self, lat: float, lng: float) -> Optional[Notice]:
        """Place the pin manually on the map."""
        if self.resolver.accept_pin_drag(lat, lng) is None:
            return Notice(
                NoticeType.ERROR,
                "Invalid Location",
                "That position is outside the valid coordinate range.",
            )
        return None

    async def use_current_location(self, location: LocationProvider) -> Optional[Notice]:
        """Use the device GPS fix as the pin location."""
        try:
            coordinate = await self.resolver.use_device_location(location)
        except PermissionDeniedError as e:
            return Notice(NoticeType.ERROR, "Location Permission Required", str(e))
        except LocationUnavailableError as e:
            log_warning(f"No GPS fix: {e}")
            return Notice(
                NoticeType.ERROR,
                "Location Error",
                "Could not get your current location. Please try again or use manual location search.",
            )

        if coordinate is None and self.resolver.last_rejection:
            return Notice(
                NoticeType.ERROR,
                "Invalid Location",
                "Received invalid coordinates from GPS. Please try again or use manual location search.",
            )
        return None

    # ---- media ------------------------------------------------------

    async def _media_action(self, action) -> Optional[Notice]:
        try:
            await action
        except PermissionDeniedError as e:
            return Notice(NoticeType.ERROR, "Permission Required", str(e))
        except MediaError as e:
            return Notice(NoticeType.ERROR, "Media Error", str(e))
        return None

    async def capture_photo(self, source: CaptureSource) -> Optional[Notice]:
        return await self._media_action(self.media.request_capture(source))

    async def toggle_recording(self) -> Optional[Notice]:
        return await self._media_action(self.media.toggle_recording())

    async def play_recording(self) -> Optional[Notice]:
        return await self._media_action(self.media.play_recording())

    async def stop_playback(self) -> Optional[Notice]:
        return await self._media_action(self.media.stop_playback())

    async def remove_audio(self) -> Optional[Notice]:
        return await self._media_action(self.media.remove_audio())

    def remove_media_item(self, index: int) -> Optional[Notice]:
        try:
            self.media.remove_item(index)
        except IndexError as e:
            log_warning(str(e))
            return Notice(NoticeType.ERROR, "Media Error", "That media item no longer exists.")
        return None

    # ---- life cycle -------------------------------------------------

    def preview(self) -> PinPreview:
        """
        Validate the draft and build the confirmation preview.

        Raises:
            DraftValidationError: Listing every rule the draft breaks
            UploadInProgressError: While a submission is running
        """
        if self.stage == DraftStage.SAVING:
            raise UploadInProgressError("An upload is already in progress")

        snapshot = self.draft.snapshot()
        self.orchestrator.ensure_valid(snapshot)

        coordinate = snapshot.coordinate
        self.preview_data = PinPreview(
            title=snapshot.title.strip(),
            description=snapshot.description.strip(),
            location_label=coordinate.address or snapshot.location_query.strip(),
            coordinate=coordinate,
            visibility=tuple(snapshot.visibility_values),
            visibility_description=self.visibility_description(),
            social_circle_ids=snapshot.social_circle_ids,
            media=snapshot.media,
            total_media_items=snapshot.media.total_items,
            has_description=bool(snapshot.description.strip()),
            created_at=datetime.now(timezone.utc),
        )
        self.stage = DraftStage.PREVIEWING
        return self.preview_data

    def edit(self) -> None:
        """Leave the preview and keep editing."""
        if self.stage == DraftStage.SAVING:
            raise UploadInProgressError("An upload is already in progress")
        self.stage = DraftStage.EDITING
        self.preview_data = None

    async def confirm(self, on_progress: Callable[[UploadProgress], None] = None) -> Notice:
        """
        Submit the draft.

        On success the draft is reset for the next pin. On failure the
        draft is left untouched so the user can retry.

        Raises:
            UploadInProgressError: If a submission is already running
        """
        if self.stage == DraftStage.SAVING:
            raise UploadInProgressError("An upload is already in progress")

        try:
            self.preview()
        except DraftValidationError as e:
            self.stage = DraftStage.EDITING
            return Notice(NoticeType.ERROR, "Missing Information", str(e))

        def track(progress: UploadProgress) -> None:
            self.progress = progress
            if on_progress is not None:
                on_progress(progress)

        self.stage = DraftStage.SAVING
        self.progress = None
        try:
            result = await self.orchestrator.submit(self.draft.snapshot(), track)
        except Exception:
            self.stage = DraftStage.FAILED
            raise

        self.last_result = result
        if not result.success:
            self.stage = DraftStage.FAILED
            log_error(f"Pin submission failed: {result.error}")
            return Notice(NoticeType.ERROR, "Save Failed", result.error)

        self.stage = DraftStage.SUCCEEDED
        log_info(f"Pin {result.pin_id} saved")
        await self._reset_session()
        return Notice(
            NoticeType.SUCCESS,
            "Memory Saved!",
            "Your memory pin has been created successfully.",
        )

    async def cancel(self) -> None:
        """Discard the draft and release media resources."""
        if self.stage == DraftStage.SAVING:
            raise UploadInProgressError("Cannot cancel while an upload is in progress")

        await self._reset_session()
        self.stage = DraftStage.EDITING
        log_info("Pin draft discarded")

    async def _reset_session(self) -> None:
        self.resolver.reset()
        await self.media.reset()
        await self.media.close()
        self.draft.reset()
        self.preview_data = None

    async def close(self) -> None:
        """Teardown whatever the current stage."""
        self.resolver.close()
        await self.media.close()
