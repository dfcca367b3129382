"""Abstract storage backend interface"""

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Abstract storage backend interface for job file operations"""

    @abstractmethod
    async def save(self, path: str, content: bytes) -> str:
        """
        Save file to storage, replacing it atomically.

        Args:
            path: Relative path within storage
            content: File content as bytes

        Returns:
            Full path to saved file

        Raises:
            StorageQuotaExceededError: If storage quota is exceeded
        """

    @abstractmethod
    async def load(self, path: str) -> bytes:
        """
        Load file from storage.

        Raises:
            FileNotFoundError: If file doesn't exist
        """

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete file; True if it existed."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if file exists in storage."""

    async def save_text(self, path: str, text: str) -> str:
        return await self.save(path, text.encode("utf-8"))

    async def load_text(self, path: str) -> str:
        return (await self.load(path)).decode("utf-8")


class StorageQuotaExceededError(Exception):
    """Raised when storage quota is exceeded"""
