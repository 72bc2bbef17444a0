class TaskNotFoundError(Exception):
    """Raised when a task identifier does not exist in the task store."""
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id '{task_id}' was not found.")
        self.task_id = task_id


class TaskValidationError(Exception):
    """Raised when caller input violates a field constraint."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class PersistenceError(Exception):
    """Raised when the task store cannot complete an operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Task store failed during '{operation}'.")
        self.operation = operation


class UpstreamError(Exception):
    """Base class for object storage failures."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"Object storage failed during '{operation}': {detail}")
        self.operation = operation
        self.detail = detail


class UpstreamAuthError(UpstreamError):
    """Raised when the object storage service rejects the service credentials."""


class UpstreamTransferError(UpstreamError):
    """Raised when an object storage call fails or the expected object is missing."""
