from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UploadCredential(BaseModel):
    """Single-key, expiring authorization for a direct-to-bucket upload."""

    upload_url: str = Field(description="Pre-signed URL the client sends the bytes to.")
    method: str = Field(default="PUT", description="HTTP method to use with upload_url.")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers the client must send verbatim with the upload.",
    )
    object_key: str = Field(description="Key the object will be stored under.")
    bucket: str = Field(description="Target bucket name.")
    expires_at: datetime = Field(description="Moment after which upload_url is rejected.")


class StoredObject(BaseModel):
    object_key: str
    size: int | None = None
    content_type: str | None = None
    etag: str | None = None


class ConfirmedUpload(BaseModel):
    object_key: str = Field(description="Key of the stored object.")
    image_url: str = Field(description="Canonical download URL for the object.")
    expires_at: datetime | None = Field(
        default=None,
        description="When image_url stops working; None for static public URLs.",
    )
    task_id: str | None = Field(
        default=None, description="Task the URL was recorded on, if any."
    )
