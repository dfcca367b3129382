"""Local filesystem storage backend"""

import os
import uuid
from pathlib import Path

import aiofiles

from file_storage.backends.base import StorageBackend, StorageQuotaExceededError
from logger import get_logger

logger = get_logger("storage")


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend with atomic replace-on-write"""

    def __init__(self, base_path: Path | str = "uploads", max_size_gb: int | None = None):
        self.base = Path(base_path)
        self.max_size_gb = max_size_gb
        self.base.mkdir(parents=True, exist_ok=True)

    def resolve(self, path: str) -> Path:
        return self.base / path

    async def save(self, path: str, content: bytes) -> str:
        if self.max_size_gb:
            current_size = self._get_total_size()
            content_size = len(content)
            max_bytes = self.max_size_gb * (1024**3)

            if current_size + content_size > max_bytes:
                raise StorageQuotaExceededError(
                    f"Quota exceeded: {current_size / (1024**3):.2f}GB + "
                    f"{content_size / (1024**3):.2f}GB > {self.max_size_gb}GB"
                )

        full_path = self.resolve(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        # Readers never observe a partially written file
        tmp_path = full_path.with_name(f".{full_path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(content)
            os.replace(tmp_path, full_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

        return str(full_path)

    async def load(self, path: str) -> bytes:
        full_path = self.resolve(path)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {full_path}")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def delete(self, path: str) -> bool:
        full_path = self.resolve(path)
        if not full_path.exists():
            return False

        full_path.unlink()
        return True

    async def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def _get_total_size(self) -> int:
        """Calculate total storage size (used for quota checks)"""
        total = 0
        for file_path in self.base.rglob("*"):
            try:
                if file_path.is_file():
                    total += file_path.stat().st_size
            except OSError:
                continue
        return total
