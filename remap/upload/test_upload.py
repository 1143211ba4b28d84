"""
Test suite for the upload module.

Covers progress aggregation, draft validation, the full submission run
against in-memory collaborators, and the Supabase HTTP adapters.
"""

import itertools
import time
from contextlib import ExitStack
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from pydantic import ValidationError

from ..geocoding.geocoding_models import Coordinate
from ..media.media_models import AudioItem, MediaItem, MediaKind, MediaSnapshot
from ..pin.pin_draft import PinDraft, Visibility
from .upload_config import UploadConfig
from .upload_errors import DraftValidationError, ServiceError, UploadInProgressError
from .upload_models import AccessCredential, CreatePinRequest, UploadStatus
from .upload_orchestrator import UploadOrchestrator
from .upload_progress import FINAL_STEP_ID, ProgressTracker, progress_percentage
from .upload_services import (
    IdentityProvider,
    ObjectStorage,
    PinBackend,
    SupabaseIdentity,
    SupabasePinBackend,
    SupabaseStorage,
    build_object_path,
    local_path,
)


# ==================== FAKE COLLABORATORS ====================

class FakeStorage(ObjectStorage):
    """Stores objects in a dict; fails uploads whose source is in ``fail_sources``."""

    def __init__(self):
        self.objects = {}
        self.attempts = []
        self.deleted = []
        self.fail_sources = set()
        self.delete_failures = 0

    def upload(self, data, bucket, path, token, content_type=None):
        source = data.decode()
        self.attempts.append(source)
        if source in self.fail_sources:
            raise ServiceError("POST upload failed with status 500", status_code=500)
        self.objects[(bucket, path)] = data
        return f"https://cdn.example/{bucket}/{path}"

    def delete(self, bucket, path, token):
        if self.delete_failures:
            self.delete_failures -= 1
            raise ServiceError("DELETE failed with status 503", status_code=503)
        self.deleted.append((bucket, path))
        self.objects.pop((bucket, path), None)


class FakeIdentity(IdentityProvider):
    def __init__(self, credential=AccessCredential(token="jwt-token", user_id="user-1")):
        self.credential = credential

    def get_access_token(self):
        return self.credential


class FakeBackend(PinBackend):
    def __init__(self):
        self.requests = []
        self.fail = False

    def create_pin(self, request, token):
        if self.fail:
            raise ServiceError("POST /rest/v1/pins failed with status 500", status_code=500)
        self.requests.append(request)
        return "pin-42"


def read_uri(uri):
    return uri.encode()


# ==================== FIXTURES ====================

_LOG_TARGETS = [
    'remap.upload.upload_orchestrator.log_info',
    'remap.upload.upload_orchestrator.log_warning',
    'remap.upload.upload_orchestrator.log_error',
    'remap.upload.upload_progress.log_debug',
    'remap.upload.upload_progress.log_warning',
    'remap.upload.upload_services.log_info',
    'remap.upload.upload_services.log_warning',
    'remap.upload.upload_services.log_error',
]


@pytest.fixture(autouse=True)
def mock_logging():
    """Mock all logging functions to prevent actual logging during tests."""
    with ExitStack() as stack:
        for target in _LOG_TARGETS:
            stack.enter_context(patch(target))
        yield


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def config():
    return UploadConfig(cleanup_backoff_seconds=0)


@pytest.fixture
def orchestrator(storage, identity, backend, config):
    return UploadOrchestrator(storage, identity, backend, config, read_file=read_uri)


def _photo(name):
    return MediaItem(local_uri=f"file:///tmp/{name}.jpg", kind=MediaKind.PHOTO, display_name=name)


def _video(name):
    return MediaItem(local_uri=f"file:///tmp/{name}.mp4", kind=MediaKind.VIDEO, display_name=name)


def _coffee_draft(media=None):
    draft = PinDraft()
    draft.set_title("Coffee")
    draft.set_description("Great espresso")
    draft.set_location_query("Degraves Street")
    draft.set_coordinate(Coordinate(-37.81, 144.96, "Degraves St, Melbourne"))
    draft.set_media(media or MediaSnapshot(photos=(_photo("p1"), _photo("p2"))))
    return draft


# ==================== TEST CLASSES ====================

class TestProgressPercentage:
    """Test percentage rounding."""

    def test_examples(self):
        assert progress_percentage(3, 5) == 60
        assert progress_percentage(2, 3) == 67
        assert progress_percentage(1, 3) == 33
        assert progress_percentage(3, 3) == 100

    def test_half_rounds_up(self):
        assert progress_percentage(1, 8) == 13  # 12.5

    def test_never_100_before_last_step(self):
        assert progress_percentage(199, 200) == 99

    def test_zero_total(self):
        assert progress_percentage(0, 0) == 0


class TestProgressTracker:
    """Test fixed-step progress aggregation."""

    def test_start_emits_preparing(self):
        emitted = []
        tracker = ProgressTracker(3, emitted.append)

        snapshot = tracker.start()

        assert snapshot.percentage == 0
        assert snapshot.current_label == "Preparing..."
        assert emitted == [snapshot]

    def test_step_counted_once(self):
        tracker = ProgressTracker(3)

        assert tracker.complete("photo-0", "p1") is not None
        assert tracker.complete("photo-0", "p1") is None
        assert tracker.completed_steps == 1

    def test_extra_media_steps_ignored(self):
        tracker = ProgressTracker(2)

        tracker.complete("photo-0", "p1")
        assert tracker.complete("photo-1", "p2") is None

        final = tracker.complete_final()
        assert final.percentage == 100
        assert final.current_label == "Pin created successfully"

    def test_four_media_items_reach_60_after_three(self):
        tracker = ProgressTracker(5)
        for step in ("photo-0", "video-0", "audio"):
            snapshot = tracker.complete(step, step)

        assert snapshot.completed_steps == 3
        assert snapshot.percentage == 60

    @pytest.mark.parametrize("order", list(itertools.permutations(
        ["photo-0", "photo-1", "video-0", "audio"]
    )))
    def test_monotonic_for_any_order(self, order):
        emitted = []
        tracker = ProgressTracker(5, emitted.append)
        tracker.start()
        for step in order:
            tracker.complete(step, step)
        tracker.complete_final()

        percentages = [p.percentage for p in emitted]
        assert percentages == sorted(percentages)
        assert percentages[-1] == 100
        assert 100 not in percentages[:-1]
        assert all(p.total_steps == 5 for p in emitted)

    def test_invalid_total(self):
        with pytest.raises(ValueError):
            ProgressTracker(0)


class TestUploadConfig:
    """Test upload configuration."""

    def test_defaults(self):
        config = UploadConfig()
        assert config.title_max_length == 100
        assert config.description_max_length == 500
        assert config.max_parallel_uploads is None
        assert config.bucket_for(MediaKind.VIDEO) == "memory-media"

    def test_invalid_parallelism(self):
        with pytest.raises(ValueError):
            UploadConfig(max_parallel_uploads=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("REMAP_MEDIA_BUCKET", "pins-media")
        monkeypatch.setenv("REMAP_MAX_PARALLEL_UPLOADS", "2")
        monkeypatch.setenv("REMAP_CLEANUP_ORPHANS", "false")

        config = UploadConfig.from_env()

        assert config.supabase_url == "https://project.supabase.co"
        assert config.bucket_for(MediaKind.AUDIO) == "pins-media"
        assert config.max_parallel_uploads == 2
        assert config.cleanup_orphans is False


class TestCreatePinRequest:
    """Test the pin payload model."""

    def test_rejects_out_of_range_latitude(self):
        with pytest.raises(ValidationError):
            CreatePinRequest(
                name="x", description="y", latitude=91, longitude=0,
                visibility=["public"], owner_id="u",
            )

    def test_requires_visibility(self):
        with pytest.raises(ValidationError):
            CreatePinRequest(
                name="x", description="y", latitude=0, longitude=0,
                visibility=[], owner_id="u",
            )


class TestDraftValidation:
    """Test the submission rules."""

    def test_valid_draft(self, orchestrator):
        assert orchestrator.validate_draft(_coffee_draft().snapshot()) == []

    def test_reports_every_problem(self, orchestrator):
        problems = orchestrator.validate_draft(PinDraft().snapshot())

        assert problems == [
            "Please add a title for your memory.",
            "Please add a description for your memory.",
            "Please select a location for your memory.",
        ]

    def test_length_bounds(self, orchestrator):
        draft = _coffee_draft()
        draft.set_title("t" * 101)
        draft.set_description("d" * 501)

        problems = orchestrator.validate_draft(draft.snapshot())

        assert problems == [
            "Title must be 100 characters or fewer.",
            "Description must be 500 characters or fewer.",
        ]

    def test_title_at_bound_is_valid(self, orchestrator):
        draft = _coffee_draft()
        draft.set_title("t" * 100)
        assert orchestrator.validate_draft(draft.snapshot()) == []

    def test_out_of_range_coordinate(self, orchestrator):
        draft = _coffee_draft()
        draft.coordinate = Coordinate(120.0, 10.0)

        assert orchestrator.validate_draft(draft.snapshot()) == [
            "Please select a valid location or try a different search term."
        ]

    def test_ensure_valid_raises_first_problem(self, orchestrator):
        with pytest.raises(DraftValidationError) as exc_info:
            orchestrator.ensure_valid(PinDraft().snapshot())

        assert str(exc_info.value) == "Please add a title for your memory."
        assert len(exc_info.value.problems) == 3


class TestUploadOrchestrator:
    """Test complete upload runs."""

    @pytest.mark.asyncio
    async def test_coffee_scenario(self, orchestrator, storage, backend):
        progress = []

        result = await orchestrator.submit(_coffee_draft().snapshot(), progress.append)

        assert result.success
        assert result.pin_id == "pin-42"
        assert [p.percentage for p in progress] == [0, 33, 67, 100]
        assert all(p.total_steps == 3 for p in progress)
        assert progress[2].completed_steps == 2
        assert progress[-1].current_label == "Pin created successfully"

        request = backend.requests[0]
        assert request.name == "Coffee"
        assert request.latitude == -37.81
        assert request.longitude == 144.96
        assert request.visibility == ["public"]
        assert request.owner_id == "user-1"
        assert request.location_query == "Degraves Street"
        assert request.image_urls == result.uploaded_urls
        assert request.audio_url is None
        assert len(storage.objects) == 2

    @pytest.mark.asyncio
    async def test_mixed_media_step_count(self, orchestrator, backend):
        media = MediaSnapshot(
            photos=(_photo("p1"), _photo("p2")),
            videos=(_video("v1"),),
            audio=AudioItem(local_uri="file:///tmp/voice.m4a"),
        )
        progress = []

        result = await orchestrator.submit(_coffee_draft(media).snapshot(), progress.append)

        assert result.success
        assert all(p.total_steps == 5 for p in progress)
        assert progress[3].completed_steps == 3
        assert progress[3].percentage == 60
        assert [p.percentage for p in progress] == [0, 20, 40, 60, 80, 100]

        request = backend.requests[0]
        assert len(request.image_urls) == 3
        assert request.image_urls[2].split("/")[-2] == "videos"
        assert "/audio/" in request.audio_url

    @pytest.mark.asyncio
    async def test_object_paths(self, orchestrator, storage):
        await orchestrator.submit(_coffee_draft().snapshot())

        for bucket, path in storage.objects:
            assert bucket == "memory-media"
            assert path.startswith("user-1/images/")
            assert path.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_no_media(self, orchestrator, backend):
        progress = []

        result = await orchestrator.submit(_coffee_draft(MediaSnapshot()).snapshot(), progress.append)

        assert result.success
        assert [p.percentage for p in progress] == [0, 100]
        assert backend.requests[0].image_urls is None

    @pytest.mark.asyncio
    async def test_photo_failure_fails_run(self, orchestrator, storage, backend):
        draft = _coffee_draft()
        before = draft.snapshot()
        storage.fail_sources.add("file:///tmp/p2.jpg")
        progress = []

        result = await orchestrator.submit(draft.snapshot(), progress.append)

        assert not result.success
        assert "p2" in result.error
        assert backend.requests == []
        assert all(p.percentage < 100 for p in progress)
        # p1 was stored, then removed again
        assert len(storage.deleted) == 1
        assert storage.objects == {}
        assert draft.snapshot() == before

        storage.fail_sources.clear()
        retry = await orchestrator.submit(draft.snapshot())
        assert retry.success

    @pytest.mark.asyncio
    async def test_failure_without_cleanup_keeps_objects(self, storage, identity, backend):
        config = UploadConfig(cleanup_orphans=False)
        orchestrator = UploadOrchestrator(storage, identity, backend, config, read_file=read_uri)
        storage.fail_sources.add("file:///tmp/p2.jpg")

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert storage.deleted == []
        assert len(storage.objects) == 1
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_cleanup_retries(self, orchestrator, storage):
        storage.fail_sources.add("file:///tmp/p2.jpg")
        storage.delete_failures = 2

        await orchestrator.submit(_coffee_draft().snapshot())

        assert len(storage.deleted) == 1

    @pytest.mark.asyncio
    async def test_cleanup_gives_up(self, orchestrator, storage):
        storage.fail_sources.add("file:///tmp/p2.jpg")
        storage.delete_failures = 10

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert storage.deleted == []

    @pytest.mark.asyncio
    async def test_no_upload_starts_after_failure(self, storage, identity, backend):
        config = UploadConfig(max_parallel_uploads=1, cleanup_backoff_seconds=0)
        orchestrator = UploadOrchestrator(storage, identity, backend, config, read_file=read_uri)
        media = MediaSnapshot(photos=(_photo("p1"), _photo("p2"), _photo("p3")))
        storage.fail_sources.add("file:///tmp/p2.jpg")

        result = await orchestrator.submit(_coffee_draft(media).snapshot())

        assert not result.success
        assert storage.attempts == ["file:///tmp/p1.jpg", "file:///tmp/p2.jpg"]

    @pytest.mark.asyncio
    async def test_persistence_failure(self, orchestrator, storage, backend):
        backend.fail = True

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert result.error.startswith("Failed to create pin")
        assert len(storage.deleted) == 2

    @pytest.mark.asyncio
    async def test_empty_title_makes_no_calls(self, storage, backend):
        identity = Mock(spec=IdentityProvider)
        orchestrator = UploadOrchestrator(storage, identity, backend, read_file=read_uri)
        draft = _coffee_draft()
        draft.set_title("   ")
        progress = []

        result = await orchestrator.submit(draft.snapshot(), progress.append)

        assert not result.success
        assert result.error == "Please add a title for your memory."
        assert result.problems == ["Please add a title for your memory."]
        assert storage.attempts == []
        assert backend.requests == []
        identity.get_access_token.assert_not_called()
        assert progress == []

    @pytest.mark.asyncio
    async def test_not_authenticated(self, storage, backend):
        orchestrator = UploadOrchestrator(storage, FakeIdentity(None), backend, read_file=read_uri)

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert result.error == "User not authenticated"
        assert storage.attempts == []

    @pytest.mark.asyncio
    async def test_identity_service_failure(self, storage, backend):
        identity = Mock(spec=IdentityProvider)
        identity.get_access_token.side_effect = ServiceError("Request timeout")
        orchestrator = UploadOrchestrator(storage, identity, backend, read_file=read_uri)

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert "Could not verify sign-in" in result.error

    @pytest.mark.asyncio
    async def test_unreadable_file(self, storage, identity, backend):
        def missing(uri):
            raise FileNotFoundError(uri)

        orchestrator = UploadOrchestrator(storage, identity, backend, read_file=missing)

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_unexpected_storage_error_fails_run_after_siblings_settle(self, identity, backend):
        class BrokenSdkStorage(FakeStorage):
            def upload(self, data, bucket, path, token, content_type=None):
                if data == b"file:///tmp/p1.jpg":
                    raise RuntimeError("SDK blew up")
                time.sleep(0.2)
                return super().upload(data, bucket, path, token, content_type)

        storage = BrokenSdkStorage()
        orchestrator = UploadOrchestrator(
            storage, identity, backend, UploadConfig(cleanup_backoff_seconds=0), read_file=read_uri
        )

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert "SDK blew up" in result.error
        assert storage.objects == {}
        assert len(storage.deleted) == 1
        assert backend.requests == []
        assert not orchestrator.is_uploading

    @pytest.mark.asyncio
    async def test_unexpected_identity_error_fails_run(self, storage, backend):
        identity = Mock(spec=IdentityProvider)
        identity.get_access_token.side_effect = RuntimeError("keychain locked")
        orchestrator = UploadOrchestrator(storage, identity, backend, read_file=read_uri)

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert "keychain locked" in result.error
        assert storage.attempts == []

    @pytest.mark.asyncio
    async def test_unexpected_backend_error_fails_run(self, orchestrator, storage):
        pins = Mock(spec=PinBackend)
        pins.create_pin.side_effect = RuntimeError("driver crashed")
        orchestrator.backend = pins

        result = await orchestrator.submit(_coffee_draft().snapshot())

        assert not result.success
        assert result.error.startswith("Failed to create pin")
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_second_run_refused_while_in_flight(self, orchestrator):
        orchestrator._in_flight = True

        with pytest.raises(UploadInProgressError):
            await orchestrator.submit(_coffee_draft().snapshot())

    @pytest.mark.asyncio
    async def test_in_flight_flag_cleared(self, orchestrator):
        await orchestrator.submit(_coffee_draft().snapshot())
        assert not orchestrator.is_uploading

    def test_build_tasks_order(self):
        media = MediaSnapshot(
            photos=(_photo("p1"),),
            videos=(_video("v1"),),
            audio=AudioItem(local_uri="file:///tmp/voice.m4a"),
        )

        tasks = UploadOrchestrator.build_tasks(media)

        assert [t.task_id for t in tasks] == ["photo-0", "video-0", "audio"]
        assert [t.folder for t in tasks] == ["images", "videos", "audio"]
        assert all(t.status == UploadStatus.PENDING for t in tasks)


class TestStorageHelpers:
    """Test path helpers."""

    def test_local_path(self):
        assert local_path("file:///tmp/My%20Photo.jpg") == "/tmp/My Photo.jpg"
        assert local_path("/tmp/a.jpg") == "/tmp/a.jpg"

    def test_build_object_path(self):
        path = build_object_path("user-1", "audio", "file:///tmp/voice.M4A")

        owner, folder, name = path.split("/")
        assert owner == "user-1"
        assert folder == "audio"
        assert name.endswith(".m4a")
        stamp, suffix = name[:-len(".m4a")].split("-")
        assert stamp.isdigit()
        assert len(suffix) == 8


def _response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = ""
    return response


class TestSupabaseAdapters:
    """Test the Supabase HTTP adapters with a mocked session."""

    @pytest.fixture
    def session(self):
        session = MagicMock()
        session.headers = {}
        return session

    def test_requires_url_and_key(self):
        with pytest.raises(ValueError):
            SupabaseStorage("", "anon")
        with pytest.raises(ValueError):
            SupabaseStorage("https://p.supabase.co", "")

    def test_storage_upload(self, session):
        session.request.return_value = _response(200, {"Key": "memory-media/u/images/a.jpg"})
        storage = SupabaseStorage("https://p.supabase.co/", "anon", session=session)

        url = storage.upload(b"bytes", "memory-media", "u/images/a.jpg", "jwt", "image/jpeg")

        assert url == "https://p.supabase.co/storage/v1/object/public/memory-media/u/images/a.jpg"
        method, called_url = session.request.call_args.args
        assert method == "POST"
        assert called_url == "https://p.supabase.co/storage/v1/object/memory-media/u/images/a.jpg"
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer jwt"
        assert headers["Content-Type"] == "image/jpeg"
        assert session.headers["apikey"] == "anon"

    def test_storage_http_error(self, session):
        session.request.return_value = _response(413)
        storage = SupabaseStorage("https://p.supabase.co", "anon", session=session)

        with pytest.raises(ServiceError) as exc_info:
            storage.upload(b"bytes", "memory-media", "u/images/a.jpg", "jwt")

        assert exc_info.value.status_code == 413

    def test_storage_timeout(self, session):
        session.request.side_effect = requests.exceptions.Timeout()
        storage = SupabaseStorage("https://p.supabase.co", "anon", session=session)

        with pytest.raises(ServiceError, match="Request timeout"):
            storage.delete("memory-media", "u/images/a.jpg", "jwt")

    def test_identity_with_token(self, session):
        session.request.return_value = _response(200, {"id": "user-9"})
        identity = SupabaseIdentity("https://p.supabase.co", "anon", access_token="jwt", session=session)

        credential = identity.get_access_token()

        assert credential == AccessCredential(token="jwt", user_id="user-9")

    def test_identity_password_sign_in(self, session):
        session.request.return_value = _response(200, {
            "access_token": "fresh", "user": {"id": "user-3"}
        })
        identity = SupabaseIdentity(
            "https://p.supabase.co", "anon", email="a@b.c", password="pw", session=session
        )

        credential = identity.get_access_token()

        assert credential == AccessCredential(token="fresh", user_id="user-3")
        assert session.request.call_args.kwargs["params"] == {"grant_type": "password"}

    def test_identity_rejected_token(self, session):
        session.request.return_value = _response(401)
        identity = SupabaseIdentity("https://p.supabase.co", "anon", access_token="old", session=session)

        assert identity.get_access_token() is None

    def test_identity_not_configured(self, session):
        identity = SupabaseIdentity("https://p.supabase.co", "anon", session=session)

        assert identity.get_access_token() is None
        session.request.assert_not_called()

    def test_create_pin(self, session):
        session.request.return_value = _response(201, [{"id": 17}])
        backend = SupabasePinBackend("https://p.supabase.co", "anon", session=session)
        request = CreatePinRequest(
            name="Coffee", description="Great espresso", latitude=-37.81, longitude=144.96,
            visibility=["public"], owner_id="user-1",
        )

        assert backend.create_pin(request, "jwt") == "17"
        kwargs = session.request.call_args.kwargs
        assert kwargs["json"][0]["name"] == "Coffee"
        assert kwargs["headers"]["Prefer"] == "return=representation"

    def test_create_pin_without_id(self, session):
        session.request.return_value = _response(201, [])
        backend = SupabasePinBackend("https://p.supabase.co", "anon", session=session)
        request = CreatePinRequest(
            name="Coffee", description="x", latitude=0, longitude=0,
            visibility=["public"], owner_id="user-1",
        )

        with pytest.raises(ServiceError):
            backend.create_pin(request, "jwt")
