from __future__ import annotations

from src.tracker.domain.models.task import Task
from src.tracker.infrastructure.postgres.orm import TaskRow


class OrmMapper:
    @staticmethod
    def to_task_row(task: Task) -> TaskRow:
        if task.id is None:
            raise ValueError("Task id is required to persist TaskRow.")
        if task.created_at is None:
            raise ValueError("Task created_at is required to persist TaskRow.")
        return TaskRow(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            created_at=task.created_at,
            image_url=task.image_url,
        )

    @staticmethod
    def to_domain_task(row: TaskRow) -> Task:
        return Task(
            id=row.id,
            title=row.title,
            description=row.description,
            status=row.status,
            created_at=row.created_at,
            image_url=row.image_url,
        )
