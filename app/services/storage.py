"""Blob storage for uploaded patient documents.

Rows in ``patient_documents`` hold a storage key; the bytes live behind a
``StorageBackend``. Keys are relative paths of the form
``<doctor_id>/<patient_id>/<timestamp>_<nonce>_<filename>``.
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from app.utils.time import utc_now

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class StorageError(Exception):
    """Raised for unknown keys and keys that point outside the store."""


class StorageBackend(ABC):
    @abstractmethod
    async def upload(
        self,
        file_data: bytes,
        filename: str,
        content_type: str | None = None,
        folder: str = "",
    ) -> str:
        """Store ``file_data`` under ``folder`` and return its key."""

    @abstractmethod
    async def download(self, key: str) -> bytes:
        """Stored bytes for ``key``; raises ``StorageError`` if absent."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns False when nothing was stored there."""


def storage_filename(filename: str) -> str:
    """Last path component of ``filename`` with unsafe characters replaced."""
    return _UNSAFE_CHARS.sub("_", Path(filename).name) or "file"


class LocalStorageBackend(StorageBackend):
    """Files under a base directory on the local disk."""

    def __init__(self, base_path: str = "./storage") -> None:
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    async def upload(
        self,
        file_data: bytes,
        filename: str,
        content_type: str | None = None,
        folder: str = "",
    ) -> str:
        directory = self._path_for(folder) if folder else self.base_path
        directory.mkdir(parents=True, exist_ok=True)

        stamp = utc_now().strftime("%Y%m%d_%H%M%S")
        target = directory / f"{stamp}_{uuid4().hex[:8]}_{storage_filename(filename)}"
        target.write_bytes(file_data)
        return target.relative_to(self.base_path).as_posix()

    async def download(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise StorageError(f"File not found: {key}")
        return path.read_bytes()

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not path.is_file():
            return False
        path.unlink()
        return True
