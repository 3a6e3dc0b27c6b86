"""Storage provider factory for creating the appropriate storage instance."""

from functools import lru_cache

from src.config import get_settings

from .base import AbstractStorage
from .exceptions import StorageConfigError
from .local import LocalStorage
from .supabase import SupabaseStorage


@lru_cache
def get_storage_provider() -> AbstractStorage:
    """Get the configured storage provider instance.

    Cached so the same client is reused for the application lifetime.

    Raises
    ------
        StorageConfigError: When Supabase storage is selected without credentials
    """
    settings = get_settings()

    if settings.STORAGE_PROVIDER == "supabase":
        if not (settings.SUPABASE_URL and settings.SUPABASE_SECRET_KEY):
            msg = "STORAGE_PROVIDER='supabase' requires SUPABASE_URL and SUPABASE_SECRET_KEY"
            raise StorageConfigError(msg)
        return SupabaseStorage(
            url=settings.SUPABASE_URL,
            key=settings.SUPABASE_SECRET_KEY,
            bucket_name=settings.STORAGE_BUCKET,
        )

    return LocalStorage(base_path=settings.LOCAL_STORAGE_PATH, base_url=settings.LOCAL_STORAGE_BASE_URL)
