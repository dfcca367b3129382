"""Key-value job index: job_id → job directory, persisted as index.json"""

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

from file_storage.backends.base import StorageBackend
from file_storage.path_builder import is_valid_job_id
from logger import format_details, get_logger

logger = get_logger("storage")


class JobIndex:
    """In-memory dict mirrored to ``index.json`` for O(1) job lookup."""

    def __init__(self, backend: StorageBackend, file_name: str = "index.json"):
        self.backend = backend
        self.file_name = file_name
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._loaded = False

    async def load(self) -> None:
        """Load the persisted index; a missing or corrupt file starts an empty one."""
        async with self._lock:
            self._entries = {}
            if await self.backend.exists(self.file_name):
                try:
                    data = json.loads(await self.backend.load_text(self.file_name))
                    self._entries = {
                        job_id: entry
                        for job_id, entry in data.get("jobs", {}).items()
                        if is_valid_job_id(job_id)
                    }
                except (ValueError, AttributeError) as e:
                    logger.warning(f"Job index unreadable, starting empty: {e}")
            self._loaded = True
            logger.info("Job index loaded | " + format_details(jobs=len(self._entries)))

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load()

    async def _persist(self) -> None:
        payload = json.dumps({"jobs": self._entries}, ensure_ascii=False, indent=2)
        await self.backend.save_text(self.file_name, payload)

    async def add(self, job_id: str, created_at: datetime | None = None) -> None:
        await self._ensure_loaded()
        async with self._lock:
            self._entries[job_id] = {
                "dir": job_id,
                "created_at": (created_at or datetime.now(UTC)).isoformat(),
            }
            await self._persist()

    async def remove(self, job_id: str) -> bool:
        await self._ensure_loaded()
        async with self._lock:
            if self._entries.pop(job_id, None) is None:
                return False
            await self._persist()
            return True

    async def get(self, job_id: str) -> dict[str, Any] | None:
        await self._ensure_loaded()
        return self._entries.get(job_id)

    async def contains(self, job_id: str) -> bool:
        return await self.get(job_id) is not None

    async def created_before(self, cutoff: datetime) -> list[str]:
        """Job ids created before ``cutoff``."""
        await self._ensure_loaded()
        expired = []
        for job_id, entry in self._entries.items():
            try:
                created_at = datetime.fromisoformat(entry["created_at"])
            except (KeyError, TypeError, ValueError):
                continue
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=UTC)
            if created_at < cutoff:
                expired.append(job_id)
        return expired

    def __len__(self) -> int:
        return len(self._entries)
