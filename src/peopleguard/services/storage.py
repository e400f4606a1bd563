"""
peopleguard.services.storage

Local file storage for attachments, letters and QR images.

Responsibilities:
- Write/read/delete files under a configured root using relative keys.
- Enforce upload size and extension rules shared by upload endpoints.
"""

from __future__ import annotations

import os
from pathlib import Path

from peopleguard.services.errors import ValidationFailedError

CASE_ATTACHMENT_EXTENSIONS = frozenset(
    {".pdf", ".doc", ".docx", ".xls", ".xlsx", ".jpg", ".jpeg", ".png", ".gif"}
)
GENERIC_FILE_EXTENSIONS = CASE_ATTACHMENT_EXTENSIONS | {".txt"}

_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".txt": "text/plain",
    ".html": "text/html",
}


def content_type_for(file_name: str) -> str:
    return _CONTENT_TYPES.get(Path(file_name).suffix.lower(), "application/octet-stream")


def check_upload(
    *, file_name: str, size: int, max_bytes: int, allowed: frozenset[str]
) -> str:
    """Validate an upload and return its lower-cased extension."""
    if not file_name or size == 0:
        raise ValidationFailedError("No file provided")
    ext = Path(file_name).suffix.lower()
    if ext not in allowed:
        raise ValidationFailedError(f"File type {ext or '(none)'} is not allowed")
    if size > max_bytes:
        raise ValidationFailedError(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit")
    return ext


class FileStorage:
    def __init__(self, *, root: str) -> None:
        self._root = Path(root)

    def path(self, key: str) -> Path:
        resolved = (self._root / key).resolve()
        # Keys come from the DB or generated ids; refuse anything escaping the root.
        if not resolved.is_relative_to(self._root.resolve()):
            raise ValidationFailedError("Invalid storage key")
        return resolved

    def save(self, key: str, data: bytes) -> str:
        target = self.path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return key

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def read(self, key: str) -> bytes:
        return self.path(key).read_bytes()

    def delete(self, key: str) -> bool:
        target = self.path(key)
        if not target.is_file():
            return False
        os.remove(target)
        return True

    def find(self, directory: str, stem: str) -> str | None:
        """Return the key of the first file in `directory` named `stem.<any ext>`."""
        folder = self.path(directory)
        if not folder.is_dir():
            return None
        for candidate in folder.glob(f"{stem}.*"):
            return f"{directory}/{candidate.name}"
        return None
