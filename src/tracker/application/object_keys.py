from __future__ import annotations

import re
from uuid import uuid4

_UNSAFE_CHARS = re.compile(r"[\s/\\\x00-\x1f\x7f]+")
_MAX_NAME_LENGTH = 128
_FALLBACK_NAME = "upload"


def sanitize_file_name(file_name: str) -> str:
    """
    Strip whitespace, path separators and control characters from a client file name.

    Leading dots are dropped so the result can never be ``.`` or ``..``. Long names
    keep their tail so the extension survives truncation.
    """
    cleaned = _UNSAFE_CHARS.sub("", file_name).lstrip(".")
    if len(cleaned) > _MAX_NAME_LENGTH:
        cleaned = cleaned[-_MAX_NAME_LENGTH:].lstrip(".")
    return cleaned or _FALLBACK_NAME


def build_object_key(file_name: str, prefix: str = "") -> str:
    return f"{prefix}{uuid4().hex}-{sanitize_file_name(file_name)}"


def build_image_key(content_type: str, task_id: str | None = None, prefix: str = "") -> str:
    """Key for server-side uploads: ``task-<task id>-<random>.<ext>``."""
    extension = sanitize_file_name(content_type.split("/")[-1])
    if task_id:
        return f"{prefix}task-{sanitize_file_name(task_id)}-{uuid4().hex}.{extension}"
    return f"{prefix}task-{uuid4().hex}.{extension}"


def is_valid_object_key(object_key: str, prefix: str = "") -> bool:
    """True when the key sits directly under ``prefix`` and carries no unsafe characters."""
    if not object_key.startswith(prefix):
        return False
    name = object_key[len(prefix):]
    return bool(name) and not name.startswith(".") and _UNSAFE_CHARS.search(name) is None
