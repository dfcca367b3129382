"""Job response schemas"""

from pydantic import BaseModel

from api.schemas.common import BASE_MODEL_CONFIG


class JobSubmittedResponse(BaseModel):
    """Job accepted for background processing."""

    model_config = BASE_MODEL_CONFIG

    job_id: str
    status: str = "queued"
    message: str | None = None


class InitUploadResponse(BaseModel):
    model_config = BASE_MODEL_CONFIG

    job_id: str
    total_chunks: int
    chunk_size: int


class ChunkReceiptResponse(BaseModel):
    model_config = BASE_MODEL_CONFIG

    chunk_index: int
    received_chunks: int
    total_chunks: int
    complete: bool
