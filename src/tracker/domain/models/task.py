from datetime import datetime

from pydantic import BaseModel, Field

from src.tracker.domain.models.task_status import TaskStatus


class Task(BaseModel):
    id: str | None = Field(default=None, description="Unique task identifier.")
    title: str = Field(description="Short task title.")
    description: str | None = Field(default=None, description="Optional free-form details.")
    status: TaskStatus = Field(
        default=TaskStatus.PENDING, description="Current workflow status."
    )
    created_at: datetime | None = Field(
        default=None, description="Server-assigned creation timestamp."
    )
    image_url: str | None = Field(
        default=None, description="Download URL of the attached image, if any."
    )
