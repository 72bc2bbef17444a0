import inject

from src.tracker.domain.repositories import ObjectStorageRepository, TaskRepository
from src.tracker.infrastructure.postgres.orm import PostgresOrm
from src.tracker.infrastructure.postgres.repositories import PostgresTaskRepository
from src.tracker.infrastructure.s3.storage import S3ObjectStorage
from src.setup.api_config import ApiSettings, get_api_settings
from src.setup.db_config import get_database_settings
from src.setup.storage_config import StorageSettings, get_storage_settings

_orm: PostgresOrm | None = None


def get_orm() -> PostgresOrm:
    """Return the process-wide ORM holder, creating it on first use."""
    global _orm
    if _orm is None:
        settings = get_database_settings()
        _orm = PostgresOrm(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    return _orm


def _bindings(binder: inject.Binder) -> None:
    storage_settings = get_storage_settings()
    binder.bind(ApiSettings, get_api_settings())
    binder.bind(StorageSettings, storage_settings)
    binder.bind_to_constructor(TaskRepository, lambda: PostgresTaskRepository(get_orm()))
    binder.bind_to_constructor(
        ObjectStorageRepository, lambda: S3ObjectStorage(storage_settings)
    )


def configure_di() -> None:
    """Configure the DI container once per process."""
    inject.configure(_bindings, once=True)
