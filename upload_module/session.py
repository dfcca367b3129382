"""Chunked upload session state"""

import math
import time
from typing import Any

from pydantic import BaseModel, Field


def expected_parts(size: int, part_size: int) -> int:
    """Number of parts announced for a file of ``size`` bytes."""
    return max(1, math.ceil(size / part_size))


class UploadSession(BaseModel):
    """One chunked upload; keyed by the job id it will become."""

    job_id: str
    filename: str
    size: int
    mime_type: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    api_key: str | None = None

    expected_parts: int
    parts: dict[int, str] = Field(default_factory=dict, description="part index → part file path")
    completed: bool = False
    assembled_path: str | None = None
    processing_started: bool = False
    created_at: float = Field(default_factory=time.time)

    @property
    def received_parts(self) -> int:
        return len(self.parts)

    def is_expired(self, ttl_seconds: float, now: float | None = None) -> bool:
        return ((now or time.time()) - self.created_at) > ttl_seconds
