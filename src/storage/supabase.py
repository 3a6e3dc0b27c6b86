"""Supabase Storage implementation using supabase-py."""

import logging

from fastapi.concurrency import run_in_threadpool
from supabase import Client, create_client

from .base import AbstractStorage
from .exceptions import FileDeleteError, FileUploadError


logger = logging.getLogger(__name__)


class SupabaseStorage(AbstractStorage):
    """Supabase Storage bucket provider.

    The supabase client is synchronous; calls run in the threadpool so the
    event loop is not blocked while a file is transferred.
    """

    def __init__(self, url: str, key: str, bucket_name: str, client: Client | None = None) -> None:
        """Initialize Supabase storage.

        Args:
            url: Supabase project URL
            key: Service (secret) key allowed to write the bucket
            bucket_name: Target bucket
            client: Pre-built client, mainly for tests
        """
        self.bucket_name = bucket_name
        self._client = client or create_client(url, key)

    def _bucket(self):  # noqa: ANN202
        return self._client.storage.from_(self.bucket_name)

    async def upload(self, file_content: bytes, key: str, content_type: str) -> None:
        """Upload file content to the bucket; existing keys are not overwritten."""
        try:
            await run_in_threadpool(
                self._bucket().upload,
                key,
                file_content,
                {"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            msg = f"Failed to upload to Supabase Storage: {key} ({e})"
            raise FileUploadError(msg) from e

    async def get_public_url(self, key: str) -> str:
        url = await run_in_threadpool(self._bucket().get_public_url, key)
        # Some client versions append a bare "?" to public URLs
        return url.rstrip("?")

    async def delete(self, key: str) -> None:
        try:
            await run_in_threadpool(self._bucket().remove, [key])
        except Exception as e:
            msg = f"Failed to delete from Supabase Storage: {key}"
            raise FileDeleteError(msg) from e
        logger.debug("Deleted %s from bucket %s", key, self.bucket_name)
