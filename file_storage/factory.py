"""Storage backend and job store factory"""

from pathlib import Path

from config.settings import get_settings
from file_storage.backends.base import StorageBackend
from file_storage.backends.local import LocalStorageBackend
from file_storage.job_store import JobStore
from logger import get_logger

logger = get_logger("storage")


def create_storage_backend() -> StorageBackend:
    """
    Create storage backend based on settings.

    Returns:
        StorageBackend instance configured based on STORAGE_TYPE setting
    """
    settings = get_settings()
    storage_type = settings.storage.type.upper()

    if storage_type == "LOCAL":
        base_path = Path(settings.storage.jobs_dir)
        max_size_gb = settings.storage.local_max_size_gb

        backend = LocalStorageBackend(base_path=base_path, max_size_gb=max_size_gb)

        logger.info(f"LOCAL storage backend created: path={base_path} | max_size={max_size_gb}GB")
        return backend

    raise ValueError(f"Unknown storage type: {storage_type}. Supported types: LOCAL")


def create_job_store(backend: StorageBackend | None = None) -> JobStore:
    settings = get_settings()
    return JobStore(
        backend=backend or create_storage_backend(),
        base_path=settings.storage.jobs_dir,
        index_file=settings.storage.index_file,
        retention_days=settings.storage.retention_days,
        sweep_interval_seconds=settings.storage.retention_sweep_interval_seconds,
    )


# Singleton instance
_job_store: JobStore | None = None


def get_job_store() -> JobStore:
    """Get the global job store instance (singleton)"""
    global _job_store
    if _job_store is None:
        _job_store = create_job_store()
    return _job_store


def reset_job_store() -> None:
    """Drop the singleton (useful for testing)"""
    global _job_store
    _job_store = None
