"""
Attachment storage services.
Validation, upload, signed-link resolution, cross-bucket migration and file
replacement for a task's single PDF. None of these touch the database; the
record sync service persists the descriptors they return.
"""
from __future__ import annotations

import logging
import posixpath
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from mytasks.core.config import settings
from mytasks.core.exceptions import ObjectNotFoundError, ResolutionFailure, StorageError, ValidationError
from mytasks.schemas.attachment import Attachment, Visibility
from mytasks.services.storage_service import PDF_CONTENT_TYPE, ObjectStore

logger = logging.getLogger(__name__)

PDF_EXTENSION = "pdf"


@dataclass(frozen=True)
class PdfFile:
    """A candidate upload: the client's filename plus its bytes."""

    filename: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def check_size(size: int, max_size_bytes: int | None = None) -> None:
    limit = settings.max_file_size_bytes if max_size_bytes is None else max_size_bytes
    if size > limit:
        raise ValidationError(
            ValidationError.TOO_LARGE,
            f"File exceeds maximum allowed size of {limit // (1024 * 1024)} MB",
        )


def validate_pdf(file: PdfFile, max_size_bytes: int | None = None) -> None:
    """Reject oversize or non-PDF files. Pure, runs before any I/O."""
    check_size(file.size, max_size_bytes)
    extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if extension != PDF_EXTENSION:
        raise ValidationError(ValidationError.WRONG_TYPE, "Only PDF files are accepted")


def bucket_for(visibility: Visibility) -> str:
    return settings.PUBLIC_BUCKET if visibility is Visibility.PUBLIC else settings.PRIVATE_BUCKET


def _millis() -> int:
    return int(time.time() * 1000)


def _descriptor(
    storage: ObjectStore, path: str, visibility: Visibility
) -> Attachment:
    bucket = bucket_for(visibility)
    url = storage.public_url(bucket, path) if visibility is Visibility.PUBLIC else None
    return Attachment(path=path, bucket=bucket, visibility=visibility, url=url)


class AttachmentUploader:
    def __init__(self, storage: ObjectStore, clock: Callable[[], int] = _millis) -> None:
        self.storage = storage
        self.clock = clock

    async def upload(
        self, file: PdfFile, task_id: uuid.UUID | str, visibility: Visibility
    ) -> Attachment:
        """
        Store a new PDF under "<task_id>/<millisecond timestamp>.pdf".
        The timestamp is the only uniqueness guard; the store refuses to
        overwrite, so a collision surfaces as StorageError. No retry.
        """
        validate_pdf(file)
        path = f"{task_id}/{self.clock()}.{PDF_EXTENSION}"
        bucket = bucket_for(visibility)
        await self.storage.upload(bucket, path, file.content, PDF_CONTENT_TYPE)
        return _descriptor(self.storage, path, visibility)


class SignedLinkResolver:
    def __init__(self, storage: ObjectStore) -> None:
        self.storage = storage

    async def resolve(
        self,
        path: str,
        bucket: str,
        ttl_seconds: int | None = None,
    ) -> str | None:
        """
        Issue a fresh time-limited URL. Never cached.
        Returns None when the provider cannot sign; that means "try again later".
        """
        ttl = settings.SIGNED_URL_EXPIRES_SECONDS if ttl_seconds is None else ttl_seconds
        try:
            return await self.storage.create_signed_url(bucket, path, ttl)
        except ResolutionFailure as exc:
            logger.warning(
                "Signed URL unavailable: bucket=%s path=%s: %s", bucket, path, exc.detail
            )
            return None


class VisibilityMigrator:
    def __init__(self, storage: ObjectStore) -> None:
        self.storage = storage

    async def migrate(
        self,
        old_path: str,
        old_bucket: str,
        new_visibility: Visibility,
        task_id: uuid.UUID | str,
    ) -> Attachment:
        """
        Move an object to the bucket of new_visibility, keeping its bytes and filename.

        Steps: download the source, write it to the destination, then delete
        the source. Any failure before the delete leaves the source intact.
        The delete is the point of no return for the caller: once the copy
        exists the new descriptor is returned even if the delete fails, which
        leaves a duplicate behind rather than risking the only copy.
        """
        new_bucket = bucket_for(new_visibility)
        new_path = f"{task_id}/{posixpath.basename(old_path)}"
        if new_bucket == old_bucket and new_path == old_path:
            return _descriptor(self.storage, old_path, new_visibility)

        content = await self.storage.download(old_bucket, old_path)
        await self.storage.upload(new_bucket, new_path, content, PDF_CONTENT_TYPE)
        try:
            await self.storage.remove(old_bucket, old_path)
        except ObjectNotFoundError:
            logger.warning(
                "Source already gone after migration: bucket=%s path=%s", old_bucket, old_path
            )
        except StorageError as exc:
            logger.warning(
                "Leaked source object after migration: bucket=%s path=%s: %s",
                old_bucket,
                old_path,
                exc.detail,
            )
        logger.info(
            "Migrated attachment: %s/%s -> %s/%s", old_bucket, old_path, new_bucket, new_path
        )
        return _descriptor(self.storage, new_path, new_visibility)


class AttachmentReplacer:
    def __init__(self, storage: ObjectStore, uploader: AttachmentUploader | None = None) -> None:
        self.storage = storage
        self.uploader = uploader or AttachmentUploader(storage)

    async def replace(
        self,
        existing: Attachment,
        new_file: PdfFile,
        new_visibility: Visibility,
        task_id: uuid.UUID | str,
    ) -> Attachment:
        """
        Upload new_file, then delete the existing object.
        A failed upload leaves the existing object untouched. A failed delete
        only leaves a stale object the row no longer references.
        """
        validate_pdf(new_file)
        replacement = await self.uploader.upload(new_file, task_id, new_visibility)
        try:
            await self.storage.remove(existing.bucket, existing.path)
        except StorageError as exc:
            logger.warning(
                "Stale object left after replacement: bucket=%s path=%s: %s",
                existing.bucket,
                existing.path,
                exc.detail,
            )
        return replacement
