from __future__ import annotations

import importlib
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.tracker.application.services import TaskService
from src.tracker.application.uploads import UploadService
from src.tracker.domain.exceptions import TaskNotFoundError, UpstreamAuthError
from src.tracker.domain.models.task import Task
from src.tracker.domain.models.task_status import TaskStatus
from src.tracker.domain.models.uploads import StoredObject, UploadCredential
from src.tracker.domain.repositories import ObjectStorageRepository, TaskRepository
from src.setup.api_config import ApiSettings
from src.setup.storage_config import StorageSettings


class InMemoryTaskRepository(TaskRepository):
    """Dict-backed task store with the same ordering rules as the Postgres one."""

    def __init__(self) -> None:
        self.rows: dict[str, Task] = {}

    async def create_task(self, task: Task) -> Task:
        if task.id is None:
            task.id = uuid4().hex
        self.rows[task.id] = task.model_copy()
        return task

    async def get_task(self, task_id: str) -> Task:
        if task_id not in self.rows:
            raise TaskNotFoundError(task_id)
        return self.rows[task_id].model_copy()

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Task]:
        rows = [row for row in self.rows.values() if status is None or row.status == status]
        rows.sort(key=lambda row: (row.created_at, row.id))
        return [row.model_copy() for row in rows[offset : offset + limit]]

    async def update_task_status(self, task_id: str, status: TaskStatus) -> None:
        if task_id not in self.rows:
            raise TaskNotFoundError(task_id)
        self.rows[task_id].status = status

    async def set_image_url(self, task_id: str, image_url: str | None) -> None:
        if task_id not in self.rows:
            raise TaskNotFoundError(task_id)
        self.rows[task_id].image_url = image_url

    async def delete_task(self, task_id: str) -> None:
        self.rows.pop(task_id, None)


class FakeObjectStorage(ObjectStorageRepository):
    """Bucket double that records issued credentials and stored objects."""

    def __init__(self, bucket: str = "task-images") -> None:
        self._bucket = bucket
        self.objects: dict[str, StoredObject] = {}
        self.put_calls: list[tuple[str, bytes, str, str | None]] = []
        self.credentials: list[UploadCredential] = []
        self.authorize_calls = 0
        self.reject_credentials = False

    @property
    def bucket(self) -> str:
        return self._bucket

    async def authorize(self) -> None:
        self.authorize_calls += 1
        if self.reject_credentials:
            raise UpstreamAuthError("authorize", "InvalidAccessKeyId")

    async def issue_upload_credential(
        self,
        object_key: str,
        content_type: str,
        *,
        expires_in: int,
        checksum_sha256: str | None = None,
    ) -> UploadCredential:
        headers = {"Content-Type": content_type}
        if checksum_sha256 is not None:
            headers["x-amz-checksum-sha256"] = checksum_sha256
        credential = UploadCredential(
            upload_url=f"https://storage.test/{self._bucket}/{object_key}?X-Amz-Expires={expires_in}",
            headers=headers,
            object_key=object_key,
            bucket=self._bucket,
            expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
        )
        self.credentials.append(credential)
        return credential

    async def head_object(self, object_key: str) -> StoredObject | None:
        return self.objects.get(object_key)

    async def presign_download(self, object_key: str, *, expires_in: int) -> tuple[str, datetime]:
        url = f"https://storage.test/{self._bucket}/{object_key}?X-Amz-Expires={expires_in}"
        return url, datetime.now(UTC) + timedelta(seconds=expires_in)

    async def put_object(
        self,
        object_key: str,
        data: bytes,
        content_type: str,
        *,
        checksum_sha256: str | None = None,
    ) -> None:
        self.put_calls.append((object_key, data, content_type, checksum_sha256))
        self.simulate_upload(object_key, data, content_type)

    def simulate_upload(self, object_key: str, data: bytes = b"img", content_type: str = "image/png") -> None:
        """Stand in for the client's direct PUT to the bucket."""
        self.objects[object_key] = StoredObject(
            object_key=object_key, size=len(data), content_type=content_type
        )


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(DEFAULT_PAGE_SIZE=10, MAX_PAGE_SIZE=100)


@pytest.fixture
def storage_settings() -> StorageSettings:
    return StorageSettings(S3_BUCKET="task-images", S3_KEY_PREFIX="", S3_PUBLIC_BASE_URL=None)


@pytest.fixture
def task_repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def object_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def task_service(task_repository: InMemoryTaskRepository, api_settings: ApiSettings) -> TaskService:
    return TaskService(repository=task_repository, settings=api_settings)


@pytest.fixture
def upload_service(
    object_storage: FakeObjectStorage,
    task_service: TaskService,
    storage_settings: StorageSettings,
) -> UploadService:
    return UploadService(
        storage=object_storage, task_service=task_service, settings=storage_settings
    )


def _patch_inject_instance(
    monkeypatch: pytest.MonkeyPatch, bindings: dict[object, object]
) -> Callable[[object], object]:
    """Patch `inject.instance` to hand out the test doubles."""
    import inject

    def fake_instance(interface: object) -> object:
        if interface in bindings:
            return bindings[interface]
        raise RuntimeError(f"Unexpected dependency request: {interface}")

    monkeypatch.setattr(inject, "instance", fake_instance)
    return fake_instance


@pytest.fixture
def api_client(
    monkeypatch: pytest.MonkeyPatch,
    task_repository: InMemoryTaskRepository,
    object_storage: FakeObjectStorage,
    api_settings: ApiSettings,
    storage_settings: StorageSettings,
):
    """FastAPI test client with services wired to the in-memory doubles."""
    _patch_inject_instance(
        monkeypatch,
        {
            TaskRepository: task_repository,
            ObjectStorageRepository: object_storage,
            ApiSettings: api_settings,
            StorageSettings: storage_settings,
        },
    )

    # Reload modules so module-level services pick up the patched injector.
    routes_module = importlib.reload(importlib.import_module("src.tracker.presentation.routes"))
    upload_routes_module = importlib.reload(
        importlib.import_module("src.tracker.presentation.upload_routes")
    )
    errors_module = importlib.import_module("src.tracker.presentation.errors")

    app = FastAPI()
    errors_module.register_exception_handlers(app)
    app.include_router(routes_module.router)
    app.include_router(routes_module.health_router)
    app.include_router(upload_routes_module.router)
    client = TestClient(app)
    return client, task_repository, object_storage
