"""Custom exceptions for the storage module."""


class StorageError(Exception):
    """Base exception for storage operations."""


class FileUploadError(StorageError):
    """Raised when a file upload fails."""


class FileDeleteError(StorageError):
    """Raised when a file delete fails."""


class StorageConfigError(StorageError):
    """Raised when the configured provider is missing credentials."""
