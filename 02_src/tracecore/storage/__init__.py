"""Storage module."""

from .storage import IStorage, Storage, StorageError

__all__ = ["IStorage", "Storage", "StorageError"]
