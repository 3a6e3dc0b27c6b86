"""Storage module for formation files with local and Supabase providers."""

from .base import AbstractStorage
from .factory import get_storage_provider
from .local import LocalStorage
from .supabase import SupabaseStorage


__all__ = [
    "AbstractStorage",
    "LocalStorage",
    "SupabaseStorage",
    "get_storage_provider",
]
