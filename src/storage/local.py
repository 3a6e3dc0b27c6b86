"""Local filesystem storage implementation."""

from pathlib import Path

import aiofiles

from .base import AbstractStorage
from .exceptions import FileDeleteError, FileUploadError


class LocalStorage(AbstractStorage):
    """Local filesystem storage provider for development."""

    def __init__(self, base_path: str, base_url: str = "") -> None:
        """Initialize local storage.

        Args:
            base_path: Base directory path for storing files
            base_url: Prefix for public URLs; absolute file paths are returned when empty
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    def _get_full_path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            msg = f"Storage key escapes base path: {key}"
            raise FileUploadError(msg)
        return path

    async def upload(self, file_content: bytes, key: str, content_type: str) -> None:  # noqa: ARG002
        """Write file content under the base path."""
        path = self._get_full_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(file_content)
        except OSError as e:
            msg = f"Failed to upload file locally: {key}"
            raise FileUploadError(msg) from e

    async def get_public_url(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return str(self._get_full_path(key))

    async def delete(self, key: str) -> None:
        try:
            path = self._get_full_path(key)
            if path.exists():
                path.unlink()
        except (OSError, FileUploadError) as e:
            msg = f"Failed to delete file locally: {key}"
            raise FileDeleteError(msg) from e
