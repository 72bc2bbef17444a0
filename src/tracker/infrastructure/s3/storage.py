from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from src.tracker.domain.exceptions import UpstreamAuthError, UpstreamTransferError
from src.tracker.domain.models.uploads import StoredObject, UploadCredential
from src.tracker.domain.repositories import ObjectStorageRepository
from src.setup.storage_config import StorageSettings

logger = logging.getLogger(__name__)

_AUTH_ERROR_CODES = {
    "401",
    "403",
    "AccessDenied",
    "ExpiredToken",
    "Forbidden",
    "InvalidAccessKeyId",
    "InvalidToken",
    "SignatureDoesNotMatch",
    "Unauthorized",
}
_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


def build_s3_client(settings: StorageSettings) -> Any:
    """Create a SigV4 S3 client for the configured endpoint."""
    return boto3.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.S3_ACCESS_KEY_ID,
        aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3ObjectStorage(ObjectStorageRepository):
    """
    boto3-backed access to an S3-compatible bucket.

    boto3 is synchronous, so network calls run in worker threads. Presigning is
    local computation and needs no round-trip.
    """

    def __init__(self, settings: StorageSettings, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client or build_s3_client(settings)

    @property
    def bucket(self) -> str:
        return self._settings.S3_BUCKET

    async def authorize(self) -> None:
        await self._call("authorize", self._client.head_bucket, Bucket=self.bucket)

    async def issue_upload_credential(
        self,
        object_key: str,
        content_type: str,
        *,
        expires_in: int,
        checksum_sha256: str | None = None,
    ) -> UploadCredential:
        params = {"Bucket": self.bucket, "Key": object_key, "ContentType": content_type}
        headers = {"Content-Type": content_type}
        if checksum_sha256 is not None:
            params["ChecksumSHA256"] = checksum_sha256
            headers["x-amz-checksum-sha256"] = checksum_sha256

        expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
        upload_url = self._presign("issue_upload_credential", "put_object", params, expires_in)
        return UploadCredential(
            upload_url=upload_url,
            method="PUT",
            headers=headers,
            object_key=object_key,
            bucket=self.bucket,
            expires_at=expires_at,
        )

    async def head_object(self, object_key: str) -> StoredObject | None:
        try:
            response = await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=object_key
            )
        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                return None
            raise self._translate("head_object", exc) from exc
        except BotoCoreError as exc:
            raise self._translate("head_object", exc) from exc

        return StoredObject(
            object_key=object_key,
            size=response.get("ContentLength"),
            content_type=response.get("ContentType"),
            etag=response.get("ETag"),
        )

    async def presign_download(self, object_key: str, *, expires_in: int) -> tuple[str, datetime]:
        expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
        url = self._presign(
            "presign_download",
            "get_object",
            {"Bucket": self.bucket, "Key": object_key},
            expires_in,
        )
        return url, expires_at

    async def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
        *,
        checksum_sha256: str | None = None,
    ) -> None:
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": object_key,
            "Body": data,
            "ContentType": content_type,
        }
        if checksum_sha256 is not None:
            params["ChecksumSHA256"] = checksum_sha256
        await self._call("put_object", self._client.put_object, **params)

    async def _call(self, operation: str, method: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(method, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(operation, exc) from exc

    def _presign(
        self, operation: str, client_method: str, params: dict[str, Any], expires_in: int
    ) -> str:
        try:
            return self._client.generate_presigned_url(
                client_method, Params=params, ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(operation, exc) from exc

    def _translate(
        self, operation: str, exc: ClientError | BotoCoreError
    ) -> UpstreamAuthError | UpstreamTransferError:
        if isinstance(exc, NoCredentialsError) or (
            isinstance(exc, ClientError) and _error_code(exc) in _AUTH_ERROR_CODES
        ):
            logger.error(
                "Object storage rejected service credentials",
                extra={"operation": operation, "bucket": self.bucket, "error": str(exc)},
            )
            return UpstreamAuthError(operation, str(exc))
        logger.error(
            "Object storage call failed",
            extra={"operation": operation, "bucket": self.bucket, "error": str(exc)},
        )
        return UpstreamTransferError(operation, str(exc))
