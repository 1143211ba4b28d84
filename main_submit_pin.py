#!/usr/bin/env python3
"""
ReMap - Pin Submission Script

Creates one memory pin from the command line: resolves the location,
attaches local photo/video/audio files, then uploads everything and
creates the pin on the configured Supabase backend.

Usage:
    python main_submit_pin.py "Title" "Description" --location "Federation Square" [options]

Options:
    --location TEXT        Place to geocode (region bias is appended)
    --lat / --lng          Use an exact coordinate instead of geocoding
    --photo PATH           Photo file to attach (repeatable)
    --video PATH           Video file to attach (repeatable)
    --audio PATH           Audio recording to attach
    --visibility OPTION    public, social or private (repeatable)
    --circle ID            Social circle to share with (repeatable)
    --log-level LEVEL      Logging level (default: INFO)
    --dry-run              Validate and preview without uploading
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from remap.config.config_module import load_config, validate_config, get_config
from remap.config.logger_module import initialize_logger, log_info, log_error

from remap.geocoding.geocoding_client import create_geocoding_provider
from remap.geocoding.geocoding_config import GeocodingConfig
from remap.geocoding.geocoding_resolver import GeocodingResolver

from remap.media.media_capture import CaptureSource, MediaCaptureSession
from remap.media.media_devices import (
    AudioDevice,
    ImagePicker,
    PermissionGateway,
    PlaybackResource,
    RecordingResource,
)
from remap.media.media_errors import PlaybackError
from remap.media.media_models import CapturedAsset, MediaItem, MediaKind

from remap.pin.pin_controller import PinDraftController
from remap.pin.pin_draft import Visibility

from remap.upload.upload_config import UploadConfig
from remap.upload.upload_errors import DraftValidationError
from remap.upload.upload_models import UploadProgress
from remap.upload.upload_orchestrator import UploadOrchestrator
from remap.upload.upload_services import SupabaseIdentity, SupabasePinBackend, SupabaseStorage


# ==================== FILE-BACKED DEVICES ====================

class GrantAllPermissions(PermissionGateway):
    """A terminal user has already chosen the files, so every permission is granted."""

    async def request_permission(self, permission) -> bool:
        return True


class FileQueuePicker(ImagePicker):
    """Hands out the photo files given on the command line, one per pick."""

    def __init__(self, paths: List[str]):
        self._paths = list(paths)

    async def launch_camera(self) -> Optional[CapturedAsset]:
        return await self.launch_library()

    async def launch_library(self) -> Optional[CapturedAsset]:
        if not self._paths:
            return None
        path = Path(self._paths.pop(0)).resolve()
        return CapturedAsset(uri=path.as_uri(), file_name=path.name, file_size=path.stat().st_size)


class FileRecording(RecordingResource):
    def __init__(self, uri: str):
        self.uri = uri

    async def start(self) -> None:
        pass

    async def stop(self) -> str:
        return self.uri

    async def release(self) -> None:
        pass


class FileAudioDevice(AudioDevice):
    """A "recording" that finishes as the audio file given on the command line."""

    def __init__(self, path: Optional[str]):
        self.uri = Path(path).resolve().as_uri() if path else ""

    async def open_recording(self) -> RecordingResource:
        return FileRecording(self.uri)

    async def load_playback(self, uri: str) -> PlaybackResource:
        raise PlaybackError("Playback is not available from the command line")


# ==================== SCRIPT ====================

def print_progress(progress: UploadProgress) -> None:
    filled = progress.percentage // 5
    bar = "#" * filled + "-" * (20 - filled)
    print(f"  [{bar}] {progress.percentage:3d}%  "
          f"({progress.completed_steps}/{progress.total_steps}) {progress.current_label}")


def parse_arguments(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="ReMap - Create a memory pin with media",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Coffee" "Great espresso" --location "Degraves Street" --photo cup.jpg
  %(prog)s "Sunset" "From the pier" --lat -37.8676 --lng 144.9741 --audio waves.m4a
  %(prog)s "Picnic" "Family day" --location "Fitzroy Gardens" --visibility social --circle fam-1
        """
    )

    # Required arguments
    parser.add_argument('title', help='Pin title')
    parser.add_argument('description', help='Pin description')

    # Location
    parser.add_argument('--location', type=str, default='',
                       help='Place to geocode')
    parser.add_argument('--lat', type=float, help='Latitude of an exact coordinate')
    parser.add_argument('--lng', type=float, help='Longitude of an exact coordinate')

    # Media
    parser.add_argument('--photo', action='append', default=[],
                       help='Photo file to attach (repeatable)')
    parser.add_argument('--video', action='append', default=[],
                       help='Video file to attach (repeatable)')
    parser.add_argument('--audio', type=str, help='Audio recording to attach')

    # Privacy
    parser.add_argument('--visibility', action='append',
                       choices=[option.value for option in Visibility],
                       help='Who can see the pin (default: public)')
    parser.add_argument('--circle', action='append', default=[],
                       help='Social circle id to share with (repeatable)')

    parser.add_argument('--log-level',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       default='INFO',
                       help='Logging level (default: INFO)')

    parser.add_argument('--dry-run', action='store_true',
                       help='Validate and preview without uploading')

    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    return args


async def run(args) -> int:
    geocoding_config = GeocodingConfig.from_env()
    upload_config = UploadConfig.from_env()

    resolver = GeocodingResolver(create_geocoding_provider(geocoding_config), geocoding_config)
    media = MediaCaptureSession(
        GrantAllPermissions(), FileQueuePicker(args.photo), FileAudioDevice(args.audio)
    )

    identity = SupabaseIdentity(
        upload_config.supabase_url,
        upload_config.anon_key,
        access_token=get_config("SUPABASE_ACCESS_TOKEN"),
        email=get_config("REMAP_USER_EMAIL"),
        password=get_config("REMAP_USER_PASSWORD"),
    )
    orchestrator = UploadOrchestrator(
        SupabaseStorage(upload_config.supabase_url, upload_config.anon_key),
        identity,
        SupabasePinBackend(upload_config.supabase_url, upload_config.anon_key,
                           table=upload_config.pins_table),
        upload_config,
    )
    controller = PinDraftController(resolver, media, orchestrator)

    try:
        controller.set_title(args.title)
        controller.set_description(args.description)

        # Location
        if args.lat is not None:
            notice = controller.drop_pin(args.lat, args.lng)
            if notice:
                print(f"\n❌ {notice.title}: {notice.message}")
                return 1
        elif args.location:
            controller.draft.set_location_query(args.location)
            await resolver.resolve_now(args.location)

        # Media
        for _ in args.photo:
            notice = await controller.capture_photo(CaptureSource.LIBRARY)
            if notice:
                print(f"\n❌ {notice.title}: {notice.message}")
                return 1
        for video in args.video:
            path = Path(video).resolve()
            media.add_item(MediaItem(local_uri=path.as_uri(), kind=MediaKind.VIDEO,
                                     display_name=path.name))
        if args.audio:
            await controller.toggle_recording()
            await controller.toggle_recording()

        # Privacy
        for option in args.visibility or []:
            controller.draft.select_visibility(Visibility(option))
        for circle_id in args.circle:
            controller.toggle_social_circle(circle_id)

        try:
            preview = controller.preview()
        except DraftValidationError as e:
            print("\n❌ The pin is not ready:")
            for problem in e.problems:
                print(f"  - {problem}")
            return 1

        print(f"\n📍 {preview.title} @ {preview.location_label}")
        print(f"🔒 {preview.visibility_description}")
        print(f"🖼️  {preview.total_media_items} media items")

        if args.dry_run:
            print("\n🔍 DRY RUN MODE - Nothing uploaded")
            return 0

        print("\nUploading...\n")
        notice = await controller.confirm(print_progress)

        if notice.is_error:
            log_error(f"Pin submission failed: {notice.message}")
            print(f"\n❌ {notice.title}: {notice.message}")
            return 1

        print(f"\n✅ {notice.title} Pin id: {controller.last_result.pin_id}")
        return 0
    finally:
        await controller.close()


def main():
    """Main entry point for pin submission."""
    args = parse_arguments()

    initialize_logger(log_level=args.log_level)
    load_config()

    try:
        validate_config(['SUPABASE_URL', 'SUPABASE_ANON_KEY'])
    except Exception as e:
        print(f"\n❌ Configuration Error: {e}")
        print("\nPlease ensure the following environment variables are set:")
        print("  - SUPABASE_URL")
        print("  - SUPABASE_ANON_KEY")
        print("  - SUPABASE_ACCESS_TOKEN or REMAP_USER_EMAIL / REMAP_USER_PASSWORD")
        print("\nYou can set them in a .env file or as environment variables.")
        return 1

    for path in args.photo + args.video + ([args.audio] if args.audio else []):
        if not Path(path).exists():
            print(f"\n❌ Media file not found: {path}")
            return 1

    log_info(f"Submitting pin '{args.title}'")
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
