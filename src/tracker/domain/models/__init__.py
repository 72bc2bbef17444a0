from src.tracker.domain.models.task import Task
from src.tracker.domain.models.task_status import TaskStatus
from src.tracker.domain.models.uploads import ConfirmedUpload, StoredObject, UploadCredential

__all__ = [
    "Task",
    "TaskStatus",
    "UploadCredential",
    "StoredObject",
    "ConfirmedUpload",
]
