"""File storage module: job directories, records, artifacts and retention"""

from file_storage.backends.base import StorageBackend, StorageQuotaExceededError
from file_storage.backends.local import LocalStorageBackend
from file_storage.factory import create_job_store, create_storage_backend, get_job_store, reset_job_store
from file_storage.job_index import JobIndex
from file_storage.job_store import JobNotFoundError, JobStore
from file_storage.path_builder import ARTIFACT_FILES, JobPathBuilder, is_valid_job_id

__all__ = [
    "ARTIFACT_FILES",
    "JobIndex",
    "JobNotFoundError",
    "JobPathBuilder",
    "JobStore",
    "LocalStorageBackend",
    "StorageBackend",
    "StorageQuotaExceededError",
    "create_job_store",
    "create_storage_backend",
    "get_job_store",
    "is_valid_job_id",
    "reset_job_store",
]
