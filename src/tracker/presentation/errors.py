"""Mapping from domain exceptions to structured HTTP error responses."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.tracker.domain.exceptions import (
    PersistenceError,
    TaskNotFoundError,
    TaskValidationError,
    UpstreamAuthError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


def build_error_payload(
    code: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


async def validation_error_handler(_: Request, exc: TaskValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=build_error_payload("validation_error", exc.message, {"field": exc.field}),
    )


async def not_found_handler(_: Request, exc: TaskNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=build_error_payload("not_found", str(exc), {"task_id": exc.task_id}),
    )


async def upstream_error_handler(_: Request, exc: UpstreamError) -> JSONResponse:
    # Detail is already logged by the storage adapter; clients get a generic message.
    code = "upstream_auth_error" if isinstance(exc, UpstreamAuthError) else "upstream_error"
    return JSONResponse(
        status_code=502,
        content=build_error_payload(code, "Object storage request failed."),
    )


async def persistence_error_handler(_: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Request failed on task store", extra={"operation": exc.operation})
    return JSONResponse(
        status_code=503,
        content=build_error_payload("persistence_error", "Task store is unavailable."),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskValidationError, validation_error_handler)
    app.add_exception_handler(TaskNotFoundError, not_found_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
