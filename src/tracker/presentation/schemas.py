from pydantic import BaseModel, Field

from src.tracker.domain.models.task_status import TaskStatus


class CreateTaskRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Task title.")
    description: str | None = Field(default=None, description="Optional details.")
    status: TaskStatus | None = Field(
        default=None, description="Initial status; defaults to 'pending'."
    )
    image_url: str | None = Field(default=None, description="Existing image URL, if any.")


class UpdateStatusRequest(BaseModel):
    status: TaskStatus


class AttachImageRequest(BaseModel):
    image_url: str = Field(..., description="Download URL to record on the task.")


class UploadCredentialRequest(BaseModel):
    file_name: str = Field(..., min_length=1, description="Original client file name.")
    content_type: str = Field(..., description="MIME type the bytes will be sent with.")
    size: int | None = Field(default=None, description="Declared file size in bytes.")
    checksum_sha256: str | None = Field(
        default=None, description="Base64 SHA-256 digest of the file, enforced by the bucket."
    )


class ConfirmUploadRequest(BaseModel):
    object_key: str = Field(..., description="Key returned with the upload credential.")
    task_id: str | None = Field(default=None, description="Task to attach the image to.")


class ImageUploadRequest(BaseModel):
    image_base64: str = Field(..., description="Image bytes, base64 or a data: URL.")
    image_type: str = Field(..., description="MIME type of the image.")
    task_id: str | None = Field(default=None, description="Task to attach the image to.")
