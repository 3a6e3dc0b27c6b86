"""Abstract storage interface for formation files."""

from abc import ABC, abstractmethod


class AbstractStorage(ABC):
    """Abstract base class for storage providers."""

    @abstractmethod
    async def upload(self, file_content: bytes, key: str, content_type: str) -> None:
        """Store file content under ``key``.

        Args:
            file_content: The file content as bytes
            key: The storage key/path for the file
            content_type: MIME type recorded with the object

        Raises
        ------
            FileUploadError: If the upload fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_public_url(self, key: str) -> str:
        """Return the URL clients use to fetch the file."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a file from storage.

        Raises
        ------
            FileDeleteError: If the deletion fails.
        """
        raise NotImplementedError
