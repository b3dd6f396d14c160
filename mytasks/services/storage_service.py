"""
Object storage client.
ObjectStore is the contract the attachment services rely on; SupabaseStorage
implements it against the Supabase Storage REST API using httpx.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from mytasks.core.config import settings
from mytasks.core.exceptions import ObjectNotFoundError, ResolutionFailure, StorageError

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def build_public_url(base_url: str, bucket: str, path: str) -> str:
    """Deterministic world-readable URL of an object in a public bucket."""
    return f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{path}"


class ObjectStore(ABC):
    """Primitives over named buckets. Every method raises StorageError on failure."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> None:
        """Store content at path. Never overwrites; an existing path is an error."""

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """Return the full object. Raises ObjectNotFoundError when absent."""

    @abstractmethod
    async def remove(self, bucket: str, path: str) -> None:
        """Delete the object. Raises ObjectNotFoundError when absent."""

    @abstractmethod
    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        """Issue a time-limited URL. Raises ResolutionFailure on failure."""

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        """Deterministic URL, no I/O."""


class SupabaseStorage(ObjectStore):
    def __init__(
        self,
        base_url: str,
        service_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }

    @classmethod
    def from_settings(cls) -> "SupabaseStorage":
        return cls(
            base_url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_KEY,
            timeout=settings.STORAGE_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _url(self, *parts: str) -> str:
        return "/".join([f"{self.base_url}/storage/v1", *parts])

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            return await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage request failed: {method} {url}: {exc}") from exc

    @staticmethod
    def _is_not_found(response: httpx.Response) -> bool:
        if response.status_code == 404:
            return True
        # The storage API reports some misses as 400 with the real code in the body
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and (
            str(body.get("statusCode")) == "404" or body.get("error") == "not_found"
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or response.text
        return response.text

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> None:
        response = await self._request(
            "POST",
            self._url("object", bucket, path),
            content=content,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        if response.is_error:
            raise StorageError(
                f"Upload of '{path}' to '{bucket}' failed: {self._error_detail(response)}"
            )
        logger.info("Stored object: bucket=%s path=%s bytes=%d", bucket, path, len(content))

    async def download(self, bucket: str, path: str) -> bytes:
        response = await self._request("GET", self._url("object", bucket, path))
        if response.is_error:
            if self._is_not_found(response):
                raise ObjectNotFoundError(bucket, path)
            raise StorageError(
                f"Download of '{path}' from '{bucket}' failed: {self._error_detail(response)}"
            )
        return response.content

    async def remove(self, bucket: str, path: str) -> None:
        response = await self._request(
            "DELETE",
            self._url("object", bucket),
            json={"prefixes": [path]},
        )
        if response.is_error:
            if self._is_not_found(response):
                raise ObjectNotFoundError(bucket, path)
            raise StorageError(
                f"Removal of '{path}' from '{bucket}' failed: {self._error_detail(response)}"
            )
        try:
            removed = response.json()
        except ValueError as exc:
            raise StorageError(f"Removal of '{path}' returned an unreadable body") from exc
        # Removing a missing key succeeds with an empty list of deleted objects
        if not removed:
            raise ObjectNotFoundError(bucket, path)
        logger.info("Removed object: bucket=%s path=%s", bucket, path)

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        try:
            response = await self._request(
                "POST",
                self._url("object", "sign", bucket, path),
                json={"expiresIn": expires_in},
            )
        except StorageError as exc:
            raise ResolutionFailure(exc.detail) from exc
        if response.is_error:
            raise ResolutionFailure(
                f"Signing '{path}' in '{bucket}' failed: {self._error_detail(response)}"
            )
        try:
            signed = response.json().get("signedURL")
        except (ValueError, AttributeError) as exc:
            raise ResolutionFailure(f"Signing '{path}' returned an unreadable body") from exc
        if not signed:
            raise ResolutionFailure(f"Signing '{path}' in '{bucket}' returned no URL")
        return f"{self.base_url}/storage/v1{signed}"

    def public_url(self, bucket: str, path: str) -> str:
        return build_public_url(self.base_url, bucket, path)
