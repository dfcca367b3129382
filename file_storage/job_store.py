"""Durable job records, artifacts and stage logs"""

import asyncio
import json
import shutil
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from file_storage.backends.base import StorageBackend
from file_storage.job_index import JobIndex
from file_storage.path_builder import ARTIFACT_FILES, JobPathBuilder, is_valid_job_id
from logger import format_details, get_logger, short_job_id
from models.job import JobError, JobRecord

logger = get_logger("storage")


class JobNotFoundError(LookupError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class JobStore:
    """Owns ``<jobs_dir>/<job_id>/`` for every job.

    Each record is read-modify-written as a whole document under a per-job
    lock and persisted atomically, so concurrent pollers never see a torn
    ``result.json``.
    """

    def __init__(
        self,
        backend: StorageBackend,
        base_path: str | Path,
        index_file: str = "index.json",
        retention_days: int = 7,
        sweep_interval_seconds: int = 86400,
    ):
        self.backend = backend
        self.paths = JobPathBuilder(str(base_path))
        self.index = JobIndex(backend, index_file)
        self.retention = timedelta(days=retention_days)
        self.sweep_interval_seconds = sweep_interval_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_sweep: float | None = None

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _rel(self, path: Path) -> str:
        return str(path.relative_to(self.paths.base))

    async def initialize(self) -> None:
        """Load the index and run a first retention sweep."""
        self.paths.base.mkdir(parents=True, exist_ok=True)
        await self.index.load()
        await self.maybe_sweep()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def job_dir(self, job_id: str) -> Path:
        return self.paths.job_root(job_id)

    async def create(self, record: JobRecord) -> JobRecord:
        """Persist a new record and register it in the index."""
        await self.maybe_sweep()
        self.job_dir(record.job_id).mkdir(parents=True, exist_ok=True)
        async with self._lock_for(record.job_id):
            await self._write_record(record)
        await self.index.add(record.job_id, record.created_at)
        logger.info(f"Job created | Job={short_job_id(record.job_id)}")
        return record

    async def get(self, job_id: str) -> JobRecord | None:
        """Current record, or None for unknown or malformed ids."""
        if not is_valid_job_id(job_id) or not await self.index.contains(job_id):
            return None
        rel = self._rel(self.paths.result_file(job_id))
        try:
            return JobRecord.model_validate_json(await self.backend.load(rel))
        except FileNotFoundError:
            return None

    async def require(self, job_id: str) -> JobRecord:
        record = await self.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    async def update(self, job_id: str, mutate: Callable[[JobRecord], None]) -> JobRecord:
        """Apply ``mutate`` to the stored record under the job lock and persist it."""
        async with self._lock_for(job_id):
            record = await self.require(job_id)
            mutate(record)
            record.touch()
            await self._write_record(record)
            return record

    async def _write_record(self, record: JobRecord) -> None:
        payload = json.dumps(record.to_json_dict(), ensure_ascii=False, indent=2)
        await self.backend.save_text(self._rel(self.paths.result_file(record.job_id)), payload)

    # ------------------------------------------------------------------
    # Artifacts and logs
    # ------------------------------------------------------------------

    async def write_artifact(self, job_id: str, kind: str, text: str) -> str:
        """Write ``<kind>.md`` and return its file name relative to the job directory."""
        path = self.paths.artifact_file(job_id, kind)
        await self.backend.save_text(self._rel(path), text)
        return path.name

    async def read_artifact(self, job_id: str, kind: str) -> str | None:
        if kind not in ARTIFACT_FILES or not is_valid_job_id(job_id):
            return None
        try:
            return await self.backend.load_text(self._rel(self.paths.artifact_file(job_id, kind)))
        except FileNotFoundError:
            return None

    async def write_error(self, job_id: str, error: JobError) -> None:
        payload = {
            "job_id": job_id,
            "status": "failed",
            "error": error.error,
            "stage": error.stage,
            "timestamp": error.timestamp.isoformat(),
        }
        await self.backend.save_text(
            self._rel(self.paths.error_file(job_id)), json.dumps(payload, ensure_ascii=False, indent=2)
        )

    async def append_step_log(self, job_id: str, file_name: str, entry: dict[str, Any]) -> None:
        """Append one timestamped entry to a JSON-array stage log."""
        rel = self._rel(self.paths.step_log_file(job_id, file_name))
        async with self._lock_for(f"{job_id}:{file_name}"):
            entries: list[dict[str, Any]] = []
            if await self.backend.exists(rel):
                try:
                    entries = json.loads(await self.backend.load_text(rel))
                except ValueError as e:
                    logger.warning(f"Stage log unreadable, restarting: {file_name} | {e}")
            entries.append({"timestamp": datetime.now(UTC).isoformat(), **entry})
            await self.backend.save_text(rel, json.dumps(entries, ensure_ascii=False, indent=2, default=str))

    def step_logger(self, job_id: str, file_name: str):
        """Bind ``append_step_log`` to one job and log file."""

        async def _append(entry: dict[str, Any]) -> None:
            await self.append_step_log(job_id, file_name, entry)

        return _append

    def delete_scratch(self, job_id: str) -> None:
        self.paths.delete_scratch(job_id)

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def delete(self, job_id: str) -> bool:
        removed = await self.index.remove(job_id)
        job_dir = self.job_dir(job_id)
        if job_dir.exists():
            await asyncio.to_thread(shutil.rmtree, job_dir, True)
        for key in [k for k in self._locks if k == job_id or k.startswith(f"{job_id}:")]:
            del self._locks[key]
        return removed

    async def sweep_expired(self, now: datetime | None = None) -> int:
        """Delete jobs created more than ``retention`` ago."""
        now = now or datetime.now(UTC)
        expired = await self.index.created_before(now - self.retention)
        for job_id in expired:
            await self.delete(job_id)
        self._last_sweep = time.monotonic()
        if expired:
            logger.info("Retention sweep | " + format_details(deleted=len(expired), remaining=len(self.index)))
        return len(expired)

    async def maybe_sweep(self) -> int:
        """Run the sweep at most once per sweep interval."""
        if self._last_sweep is not None and time.monotonic() - self._last_sweep < self.sweep_interval_seconds:
            return 0
        return await self.sweep_expired()
