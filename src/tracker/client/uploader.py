from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    NO_IMAGE = "no_image"
    CREDENTIAL_REQUESTED = "credential_requested"
    BYTES_TRANSFERRED = "bytes_transferred"
    CONFIRMED = "confirmed"


class UploadStepError(Exception):
    """Raised when one step of the upload flow fails; ``state`` is the last state reached."""

    def __init__(self, state: UploadState, message: str, status_code: int | None = None) -> None:
        super().__init__(f"Upload failed after '{state.value}': {message}")
        self.state = state
        self.status_code = status_code


@dataclass
class UploadSession:
    """Client-side view of one upload; never sent to or stored by the API."""

    file_name: str
    content_type: str
    state: UploadState = UploadState.NO_IMAGE
    credential: dict[str, Any] = field(default_factory=dict)
    image_url: str | None = None


class TaskUploadClient:
    """
    Drives the three round-trips of an image-bearing task submission.

    The task is created first and the image attached afterwards, so a failed
    upload leaves an imageless task behind rather than rolling it back.
    """

    def __init__(self, api: httpx.Client, storage: httpx.Client | None = None) -> None:
        self._api = api
        self._owns_storage = storage is None
        self._storage = storage or httpx.Client(timeout=60.0)

    def close(self) -> None:
        """Close the bucket client if this instance created it; ``api`` stays with the caller."""
        if self._owns_storage:
            self._storage.close()

    def __enter__(self) -> TaskUploadClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def create_task_with_image(
        self,
        title: str,
        data: bytes,
        file_name: str,
        content_type: str,
        *,
        description: str | None = None,
    ) -> dict[str, Any]:
        response = self._api.post("/tasks", json={"title": title, "description": description})
        self._check(response, UploadState.NO_IMAGE)
        task = response.json()
        session = self.upload(data, file_name, content_type, task_id=task["id"])
        task["image_url"] = session.image_url
        return task

    def upload(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        *,
        task_id: str | None = None,
    ) -> UploadSession:
        session = UploadSession(file_name=file_name, content_type=content_type)
        checksum = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")

        response = self._api.post(
            "/uploads/credentials",
            json={
                "file_name": file_name,
                "content_type": content_type,
                "size": len(data),
                "checksum_sha256": checksum,
            },
        )
        self._check(response, session.state)
        session.credential = response.json()
        session.state = UploadState.CREDENTIAL_REQUESTED

        credential = session.credential
        response = self._storage.request(
            credential.get("method", "PUT"),
            credential["upload_url"],
            content=data,
            headers=credential.get("headers", {}),
        )
        self._check(response, session.state)
        session.state = UploadState.BYTES_TRANSFERRED

        response = self._api.post(
            "/uploads/confirm",
            json={"object_key": credential["object_key"], "task_id": task_id},
        )
        self._check(response, session.state)
        session.image_url = response.json()["image_url"]
        session.state = UploadState.CONFIRMED
        logger.info(
            "Image upload confirmed",
            extra={"object_key": credential["object_key"], "task_id": task_id},
        )
        return session

    @staticmethod
    def _check(response: httpx.Response, state: UploadState) -> None:
        if response.is_success:
            return
        raise UploadStepError(state, response.text or response.reason_phrase, response.status_code)
