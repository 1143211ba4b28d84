"""
Collaborators used by the upload orchestrator.

Abstract interfaces for object storage, identity and pin persistence,
plus requests-based adapters for a Supabase backend (Storage, GoTrue
auth and PostgREST). All calls are blocking; the orchestrator runs them
off the event loop.
"""

import mimetypes
import os
import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from ..config.logger_module import log_info, log_warning, log_error
from .upload_errors import ServiceError
from .upload_models import AccessCredential, CreatePinRequest


# ==================== INTERFACES ====================

class ObjectStorage(ABC):
    """Stores media bytes and hands back public URLs."""

    @abstractmethod
    def upload(self, data: bytes, bucket: str, path: str, token: str,
               content_type: Optional[str] = None) -> str:
        """
        Store one object.

        Returns:
            Public URL of the stored object

        Raises:
            ServiceError: On transport or storage failure
        """
        pass

    @abstractmethod
    def delete(self, bucket: str, path: str, token: str) -> None:
        """Remove one object. Raises ServiceError on failure."""
        pass


class IdentityProvider(ABC):
    """Supplies the signed-in user's access credential."""

    @abstractmethod
    def get_access_token(self) -> Optional[AccessCredential]:
        """Return the current credential, or None if nobody is signed in."""
        pass


class PinBackend(ABC):
    """Persists pin records."""

    @abstractmethod
    def create_pin(self, request: CreatePinRequest, token: str) -> str:
        """
        Create one pin record.

        Returns:
            Identifier of the new pin

        Raises:
            ServiceError: On transport or backend failure
        """
        pass


# ==================== HELPERS ====================

def local_path(uri: str) -> str:
    """Filesystem path for a local media URI (file:// or plain path)."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return unquote(parsed.path)
    return uri


def read_local_file(uri: str) -> bytes:
    with open(local_path(uri), "rb") as f:
        return f.read()


def guess_content_type(uri: str, fallback: Optional[str] = None) -> Optional[str]:
    content_type, _ = mimetypes.guess_type(local_path(uri))
    return content_type or fallback


def build_object_path(user_id: str, folder: str, local_uri: str) -> str:
    """
    Storage path for a new object: ``{user_id}/{folder}/{epoch_ms}-{random}{ext}``.
    """
    ext = os.path.splitext(local_path(local_uri))[1].lower()
    return f"{user_id}/{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


# ==================== SUPABASE ADAPTERS ====================

class SupabaseRestClient:
    """Shared HTTP plumbing for the Supabase adapters."""

    def __init__(self,
                 base_url: str,
                 anon_key: str,
                 request_timeout: int = 30,
                 session: requests.Session = None):
        if not base_url:
            raise ValueError("Supabase URL is required")
        if not anon_key:
            raise ValueError("Supabase anon key is required")

        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.request_timeout = request_timeout
        self._session = session or requests.Session()
        self._session.headers.update({'apikey': anon_key})

    def _request(self, method: str, path: str, token: str = None, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token or self.anon_key}"

        try:
            response = self._session.request(
                method, url, headers=headers, timeout=self.request_timeout, **kwargs
            )
        except requests.exceptions.Timeout:
            log_error(f"Timeout calling {method} {path}")
            raise ServiceError("Request timeout")
        except requests.exceptions.RequestException as e:
            log_error(f"Request error calling {method} {path}: {e}")
            raise ServiceError(f"Request failed: {str(e)}")

        if response.status_code >= 400:
            log_error(f"HTTP {response.status_code} from {method} {path}: {response.text[:200]}")
            raise ServiceError(
                f"{method} {path} failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response


class SupabaseStorage(SupabaseRestClient, ObjectStorage):
    """Supabase Storage buckets."""

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    def upload(self, data: bytes, bucket: str, path: str, token: str,
               content_type: Optional[str] = None) -> str:
        self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            token=token,
            data=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "false",
            },
        )
        log_info(f"Stored {len(data)} bytes at {bucket}/{path}")
        return self.public_url(bucket, path)

    def delete(self, bucket: str, path: str, token: str) -> None:
        self._request("DELETE", f"/storage/v1/object/{bucket}/{path}", token=token)
        log_info(f"Deleted {bucket}/{path}")


class SupabaseIdentity(SupabaseRestClient, IdentityProvider):
    """
    GoTrue session lookup.

    Uses a pre-issued access token when given, otherwise signs in with
    email and password.
    """

    def __init__(self,
                 base_url: str,
                 anon_key: str,
                 access_token: str = None,
                 email: str = None,
                 password: str = None,
                 request_timeout: int = 30,
                 session: requests.Session = None):
        super().__init__(base_url, anon_key, request_timeout, session)
        self.access_token = access_token
        self.email = email
        self.password = password

    def get_access_token(self) -> Optional[AccessCredential]:
        try:
            if self.access_token:
                user = self._request("GET", "/auth/v1/user", token=self.access_token).json()
                return AccessCredential(token=self.access_token, user_id=user["id"])

            if self.email and self.password:
                session = self._request(
                    "POST",
                    "/auth/v1/token",
                    params={"grant_type": "password"},
                    json={"email": self.email, "password": self.password},
                ).json()
                return AccessCredential(token=session["access_token"], user_id=session["user"]["id"])
        except ServiceError as e:
            if e.status_code in (400, 401, 403):
                log_warning(f"Credential rejected: {e}")
                return None
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceError(f"Malformed auth response: {e}")

        log_warning("No access token or sign-in details configured")
        return None


class SupabasePinBackend(SupabaseRestClient, PinBackend):
    """PostgREST insert into the pins table."""

    def __init__(self,
                 base_url: str,
                 anon_key: str,
                 table: str = "pins",
                 request_timeout: int = 30,
                 session: requests.Session = None):
        super().__init__(base_url, anon_key, request_timeout, session)
        self.table = table

    def create_pin(self, request: CreatePinRequest, token: str) -> str:
        response = self._request(
            "POST",
            f"/rest/v1/{self.table}",
            token=token,
            json=[request.model_dump()],
            headers={"Prefer": "return=representation"},
        )
        try:
            pin_id = response.json()[0]["id"]
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise ServiceError(f"Pin created but no id returned: {e}")

        log_info(f"Created pin {pin_id}")
        return str(pin_id)
