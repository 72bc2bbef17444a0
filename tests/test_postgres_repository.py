from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from src.tracker.domain.exceptions import PersistenceError, TaskNotFoundError
from src.tracker.domain.models import Task, TaskStatus
from src.tracker.infrastructure.postgres.orm import Base, PostgresOrm
from src.tracker.infrastructure.postgres.repositories import PostgresTaskRepository

_EPOCH = datetime(2026, 1, 1, tzinfo=UTC)


def _task(title: str, minutes: int, status: TaskStatus = TaskStatus.PENDING) -> Task:
    return Task(title=title, status=status, created_at=_EPOCH + timedelta(minutes=minutes))


@pytest_asyncio.fixture
async def orm(tmp_path):
    # A file-backed database so every pooled connection sees the same schema.
    orm = PostgresOrm(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    async with orm.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield orm
    await orm.dispose()


@pytest_asyncio.fixture
async def repository(orm) -> PostgresTaskRepository:
    return PostgresTaskRepository(orm)


@pytest.mark.asyncio
async def test_create_and_get_task(repository) -> None:
    created = await repository.create_task(
        Task(
            title="Buy milk",
            description="2 litres",
            status=TaskStatus.IN_PROGRESS,
            created_at=_EPOCH,
            image_url="https://cdn.test/milk.png",
        )
    )

    fetched = await repository.get_task(created.id)

    assert fetched.id == created.id
    assert fetched.title == "Buy milk"
    assert fetched.description == "2 litres"
    assert fetched.status is TaskStatus.IN_PROGRESS
    assert fetched.image_url == "https://cdn.test/milk.png"


@pytest.mark.asyncio
async def test_get_missing_task_raises(repository) -> None:
    with pytest.raises(TaskNotFoundError):
        await repository.get_task("missing")


@pytest.mark.asyncio
async def test_list_orders_by_creation_and_pages(repository) -> None:
    # Insert out of order to make sure ordering comes from created_at.
    for minutes in (3, 0, 4, 1, 2):
        await repository.create_task(_task(f"t{minutes}", minutes))

    first_page = await repository.list_tasks(limit=2, offset=0)
    second_page = await repository.list_tasks(limit=2, offset=2)
    last_page = await repository.list_tasks(limit=2, offset=4)

    assert [t.title for t in first_page] == ["t0", "t1"]
    assert [t.title for t in second_page] == ["t2", "t3"]
    assert [t.title for t in last_page] == ["t4"]


@pytest.mark.asyncio
async def test_list_filters_by_status_value(repository) -> None:
    await repository.create_task(_task("a", 0))
    await repository.create_task(_task("b", 1, TaskStatus.IN_PROGRESS))
    await repository.create_task(_task("c", 2, TaskStatus.COMPLETED))

    in_progress = await repository.list_tasks(status=TaskStatus.IN_PROGRESS)

    assert [t.title for t in in_progress] == ["b"]


@pytest.mark.asyncio
async def test_update_status_and_image(repository) -> None:
    task = await repository.create_task(_task("a", 0))

    await repository.update_task_status(task.id, TaskStatus.COMPLETED)
    await repository.set_image_url(task.id, "https://cdn.test/a.png")

    stored = await repository.get_task(task.id)
    assert stored.status is TaskStatus.COMPLETED
    assert stored.image_url == "https://cdn.test/a.png"


@pytest.mark.asyncio
async def test_update_missing_task_raises(repository) -> None:
    with pytest.raises(TaskNotFoundError):
        await repository.update_task_status("missing", TaskStatus.COMPLETED)
    with pytest.raises(TaskNotFoundError):
        await repository.set_image_url("missing", "https://cdn.test/a.png")


@pytest.mark.asyncio
async def test_delete_removes_row_and_ignores_unknown_ids(repository) -> None:
    task = await repository.create_task(_task("a", 0))

    await repository.delete_task(task.id)
    await repository.delete_task(task.id)

    assert await repository.list_tasks() == []


@pytest.mark.asyncio
async def test_store_failures_surface_as_persistence_error(tmp_path) -> None:
    orm = PostgresOrm(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    repository = PostgresTaskRepository(orm)
    try:
        with pytest.raises(PersistenceError) as exc_info:
            await repository.list_tasks()
    finally:
        await orm.dispose()

    assert exc_info.value.operation == "list_tasks"
