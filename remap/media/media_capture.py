"""
Media capture session for a pin draft.

Owns the ordered photo/video list and the single audio recording, and
is the only holder of the device recording and playback resources.
Audio follows a small state machine:

    IDLE --start_recording--> RECORDING --stop_recording--> IDLE (has recording)
    IDLE (has recording) --play_recording--> PLAYING
    PLAYING --stop_playback / playback finished--> IDLE (has recording)
    any state --remove_audio / close--> IDLE (empty)

Permission denials and device failures raise MediaError subclasses and
leave the session usable.
"""

import time
from enum import Enum
from typing import Callable, List, Optional

from ..config.logger_module import log_info, log_warning, log_error
from .media_devices import (
    AudioDevice,
    ImagePicker,
    Permission,
    PermissionGateway,
    PlaybackResource,
    RecordingResource,
)
from .media_errors import (
    CaptureError,
    NoRecordingError,
    PermissionDeniedError,
    PlaybackError,
    RecordingError,
)
from .media_models import AudioItem, MediaItem, MediaKind, MediaSnapshot


class AudioState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PLAYING = "playing"


class CaptureSource(str, Enum):
    CAMERA = "camera"
    LIBRARY = "library"


class MediaCaptureSession:
    """
    State machine for the photos, videos and voice note of one draft.

    Every mutation is reported through ``on_change`` with a fresh
    MediaSnapshot so the draft can mirror it.
    """

    def __init__(self,
                 permissions: PermissionGateway,
                 picker: ImagePicker,
                 audio_device: AudioDevice,
                 on_change: Callable[[MediaSnapshot], None] = None,
                 single_photo: bool = False):
        """
        Initialize the session.

        Args:
            permissions: Device permission gateway
            picker: Camera / library picker
            audio_device: Factory for recording and playback resources
            on_change: Receives a snapshot after every media mutation
            single_photo: Replace the held photo instead of appending
        """
        self.permissions = permissions
        self.picker = picker
        self.audio_device = audio_device
        self.on_change = on_change
        self.single_photo = single_photo

        self._items: List[MediaItem] = []
        self.audio: Optional[AudioItem] = None
        self.state = AudioState.IDLE

        self._recording: Optional[RecordingResource] = None
        self._recording_started_at: Optional[float] = None
        self._playback: Optional[PlaybackResource] = None

    # ---- views ------------------------------------------------------

    @property
    def items(self) -> List[MediaItem]:
        """Photos and videos in the order they were added."""
        return list(self._items)

    @property
    def has_recording(self) -> bool:
        return self.audio is not None

    @property
    def is_recording(self) -> bool:
        return self.state == AudioState.RECORDING

    @property
    def is_playing(self) -> bool:
        return self.state == AudioState.PLAYING

    def snapshot(self) -> MediaSnapshot:
        return MediaSnapshot(
            photos=tuple(item for item in self._items if item.kind == MediaKind.PHOTO),
            videos=tuple(item for item in self._items if item.kind == MediaKind.VIDEO),
            audio=self.audio,
        )

    def media_summary(self) -> dict:
        snapshot = self.snapshot()
        return {
            "total_items": snapshot.total_items,
            "photo_count": len(snapshot.photos),
            "video_count": len(snapshot.videos),
            "has_audio": snapshot.audio is not None,
        }

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())

    # ---- photos and videos ------------------------------------------

    def add_item(self, item: MediaItem) -> None:
        """Append a photo or video; duplicates are allowed."""
        if self.single_photo and item.kind == MediaKind.PHOTO:
            self._items = [held for held in self._items if held.kind != MediaKind.PHOTO]
        self._items.append(item)
        log_info(f"Added {item.kind.value} '{item.display_name}' ({len(self._items)} items)")
        self._changed()

    def remove_item(self, index: int) -> MediaItem:
        """
        Remove the item at a gallery position.

        Raises:
            IndexError: If the position does not exist
        """
        if not 0 <= index < len(self._items):
            raise IndexError(f"No media item at position {index}")

        removed = self._items.pop(index)
        log_info(f"Removed {removed.kind.value} '{removed.display_name}'")
        self._changed()
        return removed

    async def request_capture(self, source: CaptureSource) -> Optional[MediaItem]:
        """
        Add one photo from the camera or the library.

        Args:
            source: Live capture or library selection, as chosen by the user

        Returns:
            The added item, or None if the user cancelled

        Raises:
            PermissionDeniedError: If camera access is refused
            CaptureError: If the picker fails
        """
        if not await self.permissions.request_permission(Permission.CAMERA):
            log_warning("Camera permission denied")
            raise PermissionDeniedError(
                "camera",
                "Please enable camera access in your device settings to take photos."
            )

        try:
            if source == CaptureSource.CAMERA:
                asset = await self.picker.launch_camera()
            else:
                asset = await self.picker.launch_library()
        except Exception as e:
            log_error(f"Error capturing photo from {source.value}: {e}")
            raise CaptureError(f"Could not access {source.value}. Please try again.") from e

        if asset is None:
            log_info(f"Photo capture from {source.value} cancelled")
            return None

        photo_number = len(self.snapshot().photos) + 1
        item = MediaItem(
            local_uri=asset.uri,
            kind=MediaKind.PHOTO,
            display_name=asset.file_name or f"Captured Memory {photo_number}",
            mime_type=asset.mime_type,
            file_size=asset.file_size,
        )
        self.add_item(item)
        return item

    # ---- audio recording --------------------------------------------

    async def start_recording(self) -> None:
        """
        Open a new recording resource and start recording.

        Raises:
            PermissionDeniedError: If microphone access is refused
            RecordingError: If the recorder cannot start
        """
        if self.state == AudioState.PLAYING:
            await self.stop_playback()

        if not await self.permissions.request_permission(Permission.MICROPHONE):
            log_warning("Microphone permission denied")
            raise PermissionDeniedError(
                "microphone",
                "Please enable microphone access in your device settings to record audio."
            )

        if self._recording is not None:
            log_warning("Releasing a recording resource left open by an earlier attempt")
            await self._release_recording()
            self.state = AudioState.IDLE

        try:
            self._recording = await self.audio_device.open_recording()
            await self._recording.start()
        except Exception as e:
            log_error(f"Could not start recording: {e}")
            await self._release_recording()
            raise RecordingError("Could not start recording. Please try again.") from e

        self._recording_started_at = time.monotonic()
        self.state = AudioState.RECORDING
        log_info("Recording started")

    async def stop_recording(self) -> AudioItem:
        """
        Finalize the recording and keep it as the draft's audio.

        Returns:
            The new audio item

        Raises:
            RecordingError: If nothing is recording or finalizing fails
        """
        if self.state != AudioState.RECORDING or self._recording is None:
            raise RecordingError("No recording in progress")

        started_at = self._recording_started_at
        try:
            uri = await self._recording.stop()
        except Exception as e:
            log_error(f"Could not stop recording: {e}")
            raise RecordingError("Could not stop recording. Please try again.") from e
        finally:
            await self._release_recording()
            self.state = AudioState.IDLE

        if not uri:
            raise RecordingError("Recording produced no audio file")

        # The old recording's player must not outlive it.
        await self._unload_playback()

        duration = time.monotonic() - started_at if started_at is not None else None
        self.audio = AudioItem(local_uri=uri, duration_hint=duration)
        log_info(f"Recording saved to: {uri}")
        self._changed()
        return self.audio

    async def toggle_recording(self) -> Optional[AudioItem]:
        """Stop when recording, otherwise start. Returns the item on stop."""
        if self.state == AudioState.RECORDING:
            return await self.stop_recording()
        await self.start_recording()
        return None

    # ---- audio playback ---------------------------------------------

    async def play_recording(self) -> None:
        """
        Load the recording fresh and play it.

        Raises:
            NoRecordingError: If nothing has been recorded
            PlaybackError: If recording is in progress or playback fails
        """
        if self.audio is None:
            raise NoRecordingError("Please record audio first before trying to play it back.")
        if self.state == AudioState.RECORDING:
            raise PlaybackError("Stop recording before playing it back.")

        await self._unload_playback()

        try:
            player = await self.audio_device.load_playback(self.audio.local_uri)
            self._playback = player
            self.state = AudioState.PLAYING
            await player.play(on_complete=lambda: self._on_playback_complete(player))
        except Exception as e:
            log_error(f"Could not play recording: {e}")
            self.state = AudioState.IDLE
            await self._unload_playback()
            raise PlaybackError("Could not play the recording. Please try again.") from e

        log_info("Playback started")

    def _on_playback_complete(self, player: PlaybackResource) -> None:
        if self._playback is player and self.state == AudioState.PLAYING:
            self.state = AudioState.IDLE
            log_info("Playback finished")

    async def stop_playback(self) -> None:
        """Stop playback and unload the player immediately."""
        if self._playback is not None and self.state == AudioState.PLAYING:
            try:
                await self._playback.stop()
            except Exception as e:
                log_warning(f"Error stopping playback: {e}")
        await self._unload_playback()
        if self.state == AudioState.PLAYING:
            self.state = AudioState.IDLE

    # ---- cleanup ----------------------------------------------------

    async def _release_recording(self) -> None:
        recording, self._recording = self._recording, None
        self._recording_started_at = None
        if recording is None:
            return
        try:
            await recording.release()
        except Exception as e:
            log_warning(f"Error releasing recording resource: {e}")

    async def _unload_playback(self) -> None:
        player, self._playback = self._playback, None
        if player is None:
            return
        try:
            await player.unload()
        except Exception as e:
            log_warning(f"Error unloading playback resource: {e}")

    async def remove_audio(self) -> None:
        """Release any live audio resource, then drop the recording."""
        await self._unload_playback()
        await self._release_recording()
        self.state = AudioState.IDLE

        had_audio = self.audio is not None
        self.audio = None
        if had_audio:
            log_info("Audio recording removed")
            self._changed()

    async def reset(self) -> None:
        """Drop every photo, video and the recording."""
        await self.remove_audio()
        if self._items:
            self._items = []
            self._changed()

    async def close(self) -> None:
        """Teardown: release device resources whatever the current state."""
        await self._unload_playback()
        await self._release_recording()
        self.state = AudioState.IDLE

    async def __aenter__(self) -> "MediaCaptureSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
