from __future__ import annotations

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel

from src.tracker.application.services import TaskService
from src.tracker.domain.models import Task, TaskStatus
from src.tracker.presentation.schemas import (
    AttachImageRequest,
    CreateTaskRequest,
    UpdateStatusRequest,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

# Instantiate services once (simple DI)
_task_service = TaskService()


@router.post(
    "",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(body: CreateTaskRequest) -> Task:
    return await _task_service.create_task(
        title=body.title,
        description=body.description,
        status=body.status,
        image_url=body.image_url,
    )


@router.get(
    "",
    response_model=list[Task],
    summary="List tasks",
    description=(
        "Returns one page of tasks ordered by creation time, oldest first. "
        "`limit` is capped at the configured maximum page size."
    ),
)
async def list_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int | None = Query(default=None, ge=1, description="Page size"),
) -> list[Task]:
    return await _task_service.list_tasks(status=status_filter, page=page, limit=limit)


@router.get("/{task_id}", response_model=Task, summary="Fetch a task")
async def get_task(task_id: str) -> Task:
    return await _task_service.get_task(task_id)


@router.patch(
    "/{task_id}/status",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change task status",
    responses={404: {"description": "Task not found."}},
)
async def update_task_status(task_id: str, body: UpdateStatusRequest) -> Response:
    await _task_service.update_task_status(task_id, body.status)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{task_id}/image",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Replace the task image reference",
    responses={404: {"description": "Task not found."}},
)
async def attach_image(task_id: str, body: AttachImageRequest) -> Response:
    await _task_service.attach_image(task_id, body.image_url)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a task",
    description="Idempotent. The task's stored image is left in the bucket.",
)
async def delete_task(task_id: str) -> Response:
    await _task_service.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


class HealthResponse(BaseModel):
    status: str


health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok")
