import base64
import binascii
import hashlib
import logging
from typing import cast
from urllib.parse import quote

import inject

from src.tracker.application.object_keys import (
    build_image_key,
    build_object_key,
    is_valid_object_key,
)
from src.tracker.application.services import TaskService
from src.tracker.domain.exceptions import TaskValidationError, UpstreamTransferError
from src.tracker.domain.models import ConfirmedUpload, UploadCredential
from src.tracker.domain.repositories import ObjectStorageRepository
from src.setup.storage_config import StorageSettings

logger = logging.getLogger(__name__)

_SHA256_DIGEST_SIZE = 32


class UploadService:
    """
    Coordinates the three-step image upload.

    1. ``request_upload_credential`` hands the client a pre-signed PUT for one key.
    2. The client sends the bytes straight to the bucket.
    3. ``confirm_upload`` checks the object landed, derives its download URL and
       optionally records it on a task.

    Failures at any step are raised to the caller. Nothing is retried here, since a
    credential may already be spent or expired; the client restarts from step 1.
    """

    def __init__(
        self,
        storage: ObjectStorageRepository | None = None,
        task_service: TaskService | None = None,
        settings: StorageSettings | None = None,
    ) -> None:
        self._storage = storage or cast(
            ObjectStorageRepository, inject.instance(ObjectStorageRepository)
        )
        self._tasks = task_service or TaskService()
        self._settings = settings or cast(StorageSettings, inject.instance(StorageSettings))

    async def request_upload_credential(
        self,
        file_name: str,
        content_type: str,
        size: int | None = None,
        checksum_sha256: str | None = None,
    ) -> UploadCredential:
        """
        Issue a short-lived upload credential scoped to a freshly generated object key.

        ``checksum_sha256`` is the base64 SHA-256 digest of the file. When given, it is
        bound into the signature and the bucket rejects bytes that do not match.
        Without it the uploaded content is not integrity-checked.
        """
        self._validate_content(content_type, size)
        if checksum_sha256 is not None:
            _validate_checksum(checksum_sha256)

        # Fail loudly on misconfigured service credentials before signing anything.
        await self._storage.authorize()

        object_key = build_object_key(file_name, prefix=self._settings.S3_KEY_PREFIX)
        credential = await self._storage.issue_upload_credential(
            object_key,
            content_type,
            expires_in=self._settings.UPLOAD_URL_TTL_SECONDS,
            checksum_sha256=checksum_sha256,
        )
        logger.info(
            "Upload credential issued",
            extra={
                "object_key": object_key,
                "content_type": content_type,
                "expires_at": credential.expires_at.isoformat(),
            },
        )
        return credential

    async def confirm_upload(self, object_key: str, task_id: str | None = None) -> ConfirmedUpload:
        """
        Turn an uploaded object key into a download URL.

        The object must exist in the bucket. When ``task_id`` is given the URL is stored
        on that task; otherwise the caller is responsible for attaching it later.
        """
        if not is_valid_object_key(object_key, self._settings.S3_KEY_PREFIX):
            raise TaskValidationError("object_key", "is not a key issued by this service")

        stored = await self._storage.head_object(object_key)
        if stored is None:
            logger.warning(
                "Upload confirmation for missing object",
                extra={"object_key": object_key, "bucket": self._storage.bucket},
            )
            raise UpstreamTransferError("confirm_upload", f"object '{object_key}' was not uploaded")

        return await self._finalize(object_key, task_id)

    async def upload_image(
        self,
        data: bytes,
        content_type: str,
        task_id: str | None = None,
    ) -> ConfirmedUpload:
        """
        Store image bytes received by the API and finalize them like ``confirm_upload``.

        The SHA-256 checksum is computed here, so the bucket verifies the stored bytes.
        """
        self._validate_content(content_type, len(data))
        if task_id is not None:
            # Unknown tasks fail before any bytes reach the bucket.
            await self._tasks.get_task(task_id)

        object_key = build_image_key(content_type, task_id, prefix=self._settings.S3_KEY_PREFIX)
        checksum = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")
        await self._storage.put_object(object_key, data, content_type, checksum_sha256=checksum)
        logger.info(
            "Image stored through the API",
            extra={"object_key": object_key, "size": len(data)},
        )
        return await self._finalize(object_key, task_id)

    async def _finalize(self, object_key: str, task_id: str | None) -> ConfirmedUpload:
        public_base = self._settings.S3_PUBLIC_BASE_URL
        if public_base:
            # Keys may carry URL-reserved characters such as "#" or "?".
            encoded_key = quote(object_key, safe="/")
            image_url = f"{public_base.rstrip('/')}/{self._storage.bucket}/{encoded_key}"
            expires_at = None
        else:
            image_url, expires_at = await self._storage.presign_download(
                object_key, expires_in=self._settings.DOWNLOAD_URL_TTL_SECONDS
            )

        if task_id is not None:
            await self._tasks.attach_image(task_id, image_url)

        logger.info(
            "Upload confirmed",
            extra={"object_key": object_key, "task_id": task_id},
        )
        return ConfirmedUpload(
            object_key=object_key,
            image_url=image_url,
            expires_at=expires_at,
            task_id=task_id,
        )

    def _validate_content(self, content_type: str, size: int | None) -> None:
        if content_type not in self._settings.ALLOWED_CONTENT_TYPES:
            allowed = ", ".join(self._settings.ALLOWED_CONTENT_TYPES)
            raise TaskValidationError("content_type", f"must be one of: {allowed}")
        if size is not None and not 0 < size <= self._settings.MAX_UPLOAD_BYTES:
            raise TaskValidationError(
                "size", f"must be between 1 and {self._settings.MAX_UPLOAD_BYTES} bytes"
            )


def _validate_checksum(checksum_sha256: str) -> None:
    try:
        digest = base64.b64decode(checksum_sha256, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TaskValidationError("checksum_sha256", "must be base64 encoded") from exc
    if len(digest) != _SHA256_DIGEST_SIZE:
        raise TaskValidationError("checksum_sha256", "must encode a 32-byte SHA-256 digest")
