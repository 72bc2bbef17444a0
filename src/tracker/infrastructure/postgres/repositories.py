from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from src.tracker.domain.exceptions import PersistenceError, TaskNotFoundError
from src.tracker.domain.models.task import Task
from src.tracker.domain.models.task_status import TaskStatus
from src.tracker.domain.repositories import TaskRepository
from src.tracker.infrastructure.postgres.mappers import OrmMapper
from src.tracker.infrastructure.postgres.orm import PostgresOrm, TaskRow

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Task store operation failed", extra={"operation": operation})
        raise PersistenceError(operation) from exc


class PostgresTaskRepository(TaskRepository):
    """Postgres-backed task storage using SQLAlchemy async sessions."""

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def create_task(self, task: Task) -> Task:
        """Persist a new task and return it with its id."""
        if task.id is None:
            task.id = uuid4().hex

        task_row = OrmMapper.to_task_row(task)
        with _store_errors("create_task"):
            async with self._orm.session_factory() as session:
                async with session.begin():
                    session.add(task_row)
        return task

    async def get_task(self, task_id: str) -> Task:
        """Fetch a task by id."""
        with _store_errors("get_task"):
            async with self._orm.session_factory() as session:
                task_row = await session.get(TaskRow, task_id)

        if task_row is None:
            raise TaskNotFoundError(task_id)
        return OrmMapper.to_domain_task(task_row)

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks with an optional status filter, oldest first."""
        statement = select(TaskRow)
        if status is not None:
            statement = statement.where(TaskRow.status == status)

        # id breaks ties between rows created in the same instant.
        statement = (
            statement.order_by(TaskRow.created_at, TaskRow.id).limit(limit).offset(offset)
        )

        with _store_errors("list_tasks"):
            async with self._orm.session_factory() as session:
                result = await session.execute(statement)
                rows = result.scalars().all()

        return [OrmMapper.to_domain_task(row) for row in rows]

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        """Update the status column of an existing task."""
        with _store_errors("update_task_status"):
            async with self._orm.session_factory() as session:
                async with session.begin():
                    task_row = await session.get(TaskRow, task_id)
                    if task_row is None:
                        raise TaskNotFoundError(task_id)
                    task_row.status = status

    async def set_image_url(self, task_id: str, image_url: str | None) -> None:
        """Overwrite the image reference of an existing task."""
        with _store_errors("set_image_url"):
            async with self._orm.session_factory() as session:
                async with session.begin():
                    task_row = await session.get(TaskRow, task_id)
                    if task_row is None:
                        raise TaskNotFoundError(task_id)
                    task_row.image_url = image_url

    async def delete_task(self, task_id: str) -> None:
        """Hard-delete a task row; a missing id deletes nothing."""
        with _store_errors("delete_task"):
            async with self._orm.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(TaskRow).where(TaskRow.id == task_id))
