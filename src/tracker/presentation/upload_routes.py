from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, status

from src.tracker.application.uploads import UploadService
from src.tracker.domain.exceptions import TaskValidationError
from src.tracker.domain.models import ConfirmedUpload, UploadCredential
from src.tracker.presentation.schemas import (
    ConfirmUploadRequest,
    ImageUploadRequest,
    UploadCredentialRequest,
)

router = APIRouter(prefix="/uploads", tags=["uploads"])

_upload_service = UploadService()


def _decode_image(image_base64: str) -> bytes:
    # Accept both raw base64 and "data:image/png;base64,..." URLs.
    encoded = image_base64.split(";base64,")[-1]
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TaskValidationError("image_base64", "is not valid base64") from exc
    if not data:
        raise TaskValidationError("image_base64", "must not be empty")
    return data


@router.post(
    "/credentials",
    response_model=UploadCredential,
    status_code=status.HTTP_201_CREATED,
    summary="Request a pre-signed upload URL",
    description=(
        "Issues a short-lived PUT URL scoped to one new object key. Send the file "
        "directly to `upload_url` with the returned headers, then call `/uploads/confirm`."
    ),
    responses={502: {"description": "Object storage rejected the request."}},
)
async def request_upload_credential(body: UploadCredentialRequest) -> UploadCredential:
    return await _upload_service.request_upload_credential(
        file_name=body.file_name,
        content_type=body.content_type,
        size=body.size,
        checksum_sha256=body.checksum_sha256,
    )


@router.post(
    "/confirm",
    response_model=ConfirmedUpload,
    summary="Confirm a finished upload",
    responses={
        404: {"description": "Task not found."},
        502: {"description": "The object is missing or storage failed."},
    },
)
async def confirm_upload(body: ConfirmUploadRequest) -> ConfirmedUpload:
    return await _upload_service.confirm_upload(body.object_key, task_id=body.task_id)


@router.post(
    "/image",
    response_model=ConfirmedUpload,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an image through the API",
)
async def upload_image(body: ImageUploadRequest) -> ConfirmedUpload:
    data = _decode_image(body.image_base64)
    return await _upload_service.upload_image(data, body.image_type, task_id=body.task_id)
