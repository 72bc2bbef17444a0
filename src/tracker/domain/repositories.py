from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.tracker.domain.models.task import Task
from src.tracker.domain.models.task_status import TaskStatus
from src.tracker.domain.models.uploads import StoredObject, UploadCredential


class TaskRepository(Protocol):
    """Repository contract for the task table."""

    async def create_task(self, task: Task) -> Task:
        """Persist a new task and return it with its id assigned."""

    async def get_task(self, task_id: str) -> Task:
        """Fetch a task by id or raise ``TaskNotFoundError``."""

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks ordered by creation time, oldest first."""

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        """Set the status of an existing task or raise ``TaskNotFoundError``."""

    async def set_image_url(self, task_id: str, image_url: str | None) -> None:
        """Set the image reference of an existing task or raise ``TaskNotFoundError``."""

    async def delete_task(self, task_id: str) -> None:
        """Remove the task row. Unknown ids are ignored."""


class ObjectStorageRepository(Protocol):
    """Contract for the S3-compatible bucket that stores task images."""

    @property
    def bucket(self) -> str:
        """Name of the bucket all keys live in."""

    async def authorize(self) -> None:
        """Verify the service credentials, raising ``UpstreamAuthError`` when rejected."""

    async def issue_upload_credential(
        self,
        object_key: str,
        content_type: str,
        *,
        expires_in: int,
        checksum_sha256: str | None = None,
    ) -> UploadCredential:
        """Pre-sign a single upload of ``object_key``."""

    async def head_object(self, object_key: str) -> StoredObject | None:
        """Return object metadata, or ``None`` when the key does not exist."""

    async def presign_download(self, object_key: str, *, expires_in: int) -> tuple[str, datetime]:
        """Return a time-limited download URL and its expiry."""

    async def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
        *,
        checksum_sha256: str | None = None,
    ) -> None:
        """Store ``data`` under ``object_key``."""
