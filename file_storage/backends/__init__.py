"""Storage backend implementations"""

from file_storage.backends.base import StorageBackend
from file_storage.backends.local import LocalStorageBackend

__all__ = [
    "LocalStorageBackend",
    "StorageBackend",
]
