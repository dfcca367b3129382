"""Chunked upload endpoints"""

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from api.dependencies import get_app_settings, get_event_bus, get_job_service, get_runner, get_store
from api.pipeline.events import JobEventBus
from api.pipeline.runner import JobRunner
from api.routers.jobs import job_response
from api.schemas.common import ErrorResponse
from api.schemas.job import (
    ChunkReceiptResponse,
    InitUploadRequest,
    InitUploadResponse,
    JobSubmittedResponse,
    ProcessUploadedRequest,
)
from api.services.job_service import JobService
from api.shared.exceptions import NotFoundError, PayloadTooLargeError
from config.settings import Settings
from file_storage import JobStore, is_valid_job_id

router = APIRouter(prefix="/api", tags=["Uploads"])


@router.post(
    "/init-upload",
    response_model=InitUploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def init_upload(
    request: InitUploadRequest,
    service: JobService = Depends(get_job_service),
    settings: Settings = Depends(get_app_settings),
):
    """Open a chunked upload session; no bytes are accepted over the size ceiling."""
    session = await service.init_upload(request)
    return InitUploadResponse(
        job_id=session.job_id,
        total_chunks=session.expected_parts,
        chunk_size=settings.upload.chunk_size_bytes,
    )


@router.post(
    "/upload-chunk/{job_id}",
    response_model=ChunkReceiptResponse,
    responses={404: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def upload_chunk(
    job_id: str,
    chunk_index: int = Form(..., ge=0),
    total_chunks: int | None = Form(None, ge=1),
    chunk: UploadFile = File(...),
    service: JobService = Depends(get_job_service),
    settings: Settings = Depends(get_app_settings),
):
    """Deliver one part; the file is assembled when the last missing part arrives."""
    if not is_valid_job_id(job_id):
        raise NotFoundError("Upload", job_id)

    limit = settings.upload.max_chunk_size_bytes
    data = await chunk.read(limit + 1)
    if len(data) > limit:
        raise PayloadTooLargeError(f"Chunk exceeds {settings.upload.max_chunk_size_mb} MB limit")

    receipt = await service.put_chunk(job_id, chunk_index, data, total_chunks)
    return ChunkReceiptResponse(**receipt.to_dict())


@router.post(
    "/process-uploaded/{job_id}",
    status_code=202,
    response_model=JobSubmittedResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def process_uploaded(
    job_id: str,
    request: ProcessUploadedRequest | None = Body(None),
    service: JobService = Depends(get_job_service),
    store: JobStore = Depends(get_store),
    events: JobEventBus = Depends(get_event_bus),
    runner: JobRunner = Depends(get_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Start processing an assembled upload (once)."""
    if not is_valid_job_id(job_id):
        raise NotFoundError("Upload", job_id)

    request = request or ProcessUploadedRequest()
    record, api_key = await service.submit_uploaded(job_id, request.api_key)
    return job_response(record.job_id, api_key, request.stream_response, service, store, events, runner, settings)
