import logging
from datetime import UTC, datetime
from typing import cast
from urllib.parse import urlparse

import inject

from src.tracker.domain.exceptions import TaskValidationError
from src.tracker.domain.models import Task, TaskStatus
from src.tracker.domain.repositories import TaskRepository
from src.setup.api_config import ApiSettings

logger = logging.getLogger(__name__)

_MAX_TITLE_LENGTH = 255


def _validate_image_url(image_url: str) -> str:
    parsed = urlparse(image_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise TaskValidationError("image_url", "must be an absolute http(s) URL")
    return image_url


class TaskService:
    """CRUD operations over the task store."""

    def __init__(
        self,
        repository: TaskRepository | None = None,
        settings: ApiSettings | None = None,
    ) -> None:
        self._repository = repository or cast(TaskRepository, inject.instance(TaskRepository))
        self._settings = settings or cast(ApiSettings, inject.instance(ApiSettings))

    async def create_task(
        self,
        title: str,
        description: str | None = None,
        status: TaskStatus | None = None,
        image_url: str | None = None,
    ) -> Task:
        """
        Validate the input and insert a new task with a server-side timestamp.
        """
        title = (title or "").strip()
        if not title:
            raise TaskValidationError("title", "must not be empty")
        if len(title) > _MAX_TITLE_LENGTH:
            raise TaskValidationError("title", f"must be at most {_MAX_TITLE_LENGTH} characters")
        if image_url is not None:
            _validate_image_url(image_url)

        task = Task(
            title=title,
            description=description,
            status=status or TaskStatus.PENDING,
            created_at=datetime.now(UTC),
            image_url=image_url,
        )
        task = await self._repository.create_task(task)
        logger.info("Task created", extra={"task_id": task.id, "status": task.status.value})
        return task

    async def get_task(self, task_id: str) -> Task:
        return await self._repository.get_task(task_id)

    async def list_tasks(
        self,
        status: TaskStatus | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[Task]:
        """
        Return one page of tasks, oldest first.

        ``limit`` defaults to ``DEFAULT_PAGE_SIZE`` and is capped at ``MAX_PAGE_SIZE``;
        ``page`` is 1-based.
        """
        if limit is None:
            limit = self._settings.DEFAULT_PAGE_SIZE
        if limit < 1:
            raise TaskValidationError("limit", "must be at least 1")
        limit = min(limit, self._settings.MAX_PAGE_SIZE)
        if page is None:
            page = 1
        if page < 1:
            raise TaskValidationError("page", "must be at least 1")

        return await self._repository.list_tasks(
            status=status, limit=limit, offset=(page - 1) * limit
        )

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        """Change only the status of an existing task; unknown ids raise ``TaskNotFoundError``."""
        await self._repository.update_task_status(task_id, status)
        logger.info("Task status updated", extra={"task_id": task_id, "status": status.value})

    async def delete_task(self, task_id: str) -> None:
        """
        Hard-delete a task. Deleting an unknown id is a no-op.

        The referenced image, if any, stays in the bucket.
        """
        await self._repository.delete_task(task_id)
        logger.info("Task deleted", extra={"task_id": task_id})

    async def attach_image(self, task_id: str, image_url: str) -> None:
        """Overwrite the task's image reference."""
        _validate_image_url(image_url)
        await self._repository.set_image_url(task_id, image_url)
        logger.info("Image attached to task", extra={"task_id": task_id})
