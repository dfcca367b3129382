"""Job submission service: turns accepted uploads into queued jobs"""

import uuid
from pathlib import Path

from fastapi import UploadFile

from api.pipeline.runner import JobRunner
from api.schemas.job import InitUploadRequest, ProcessingOptionsRequest
from api.shared.exceptions import (
    APIValidationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    PayloadTooLargeError,
)
from config.settings import Settings
from file_storage.job_store import JobStore
from gemini_module import GeminiConfig
from logger import format_details, get_logger, short_job_id
from models.job import JobInput, JobOptions, JobRecord
from upload_module import (
    InvalidPartError,
    PartReceipt,
    UnsupportedSourceError,
    UploadAlreadyStartedError,
    UploadAssembler,
    UploadError,
    UploadIncompleteError,
    UploadSession,
    UploadSessionNotFoundError,
    UploadTooLargeError,
)
from utils.media_types import is_video_file

logger = get_logger("jobs")

_OPTION_FIELDS = {"tier", "screenshot_count", "audio_chunk_minutes", "generate_report", "instructions"}


def to_api_error(error: UploadError) -> Exception:
    """Map an upload domain error onto the unified HTTP error."""
    if isinstance(error, UploadTooLargeError):
        return PayloadTooLargeError(str(error))
    if isinstance(error, UploadSessionNotFoundError):
        return NotFoundError("Upload", error.job_id)
    if isinstance(error, UploadIncompleteError | UploadAlreadyStartedError):
        return ConflictError(str(error))
    if isinstance(error, InvalidPartError | UnsupportedSourceError):
        return APIValidationError(str(error))
    return BadRequestError(str(error))


class JobService:
    """Submission paths shared by the jobs and uploads routers."""

    def __init__(
        self,
        store: JobStore,
        assembler: UploadAssembler,
        runner: JobRunner,
        settings: Settings,
        gemini_config: GeminiConfig | None = None,
    ):
        self.store = store
        self.assembler = assembler
        self.runner = runner
        self.settings = settings
        self.gemini_config = gemini_config or GeminiConfig()

    def resolve_api_key(self, api_key: str | None) -> str:
        """Request credential, else the configured one; 400 when neither exists."""
        key = (api_key or "").strip() or self.gemini_config.api_key
        if not key:
            raise BadRequestError("Gemini API key is required: pass api_key or set GEMINI_API_KEY")
        return key

    def build_options(self, request: ProcessingOptionsRequest) -> JobOptions:
        return JobOptions(
            tier=request.tier,
            screenshot_count=request.screenshot_count,
            segment_minutes=request.audio_chunk_minutes,
            overlap_minutes=self.settings.processing.effective_overlap(request.audio_chunk_minutes),
            generate_report=request.generate_report,
            instructions=request.instructions,
        )

    # ------------------------------------------------------------------
    # Single-shot
    # ------------------------------------------------------------------

    async def submit_single(self, file: UploadFile, request: ProcessingOptionsRequest) -> tuple[JobRecord, str]:
        """Store the upload and create a queued job. Returns the record and the resolved key."""
        api_key = self.resolve_api_key(request.api_key)
        options = self.build_options(request)
        filename = Path(file.filename or "upload").name
        job_id = uuid.uuid4().hex

        try:
            stored_path, size = await self.assembler.store_single(
                job_id, filename, file.content_type, file, declared_size=file.size
            )
        except UploadError as e:
            self.store.paths.delete_job_files(job_id)
            raise to_api_error(e) from e

        job_input = JobInput(
            original_filename=filename,
            stored_path=stored_path,
            size=size,
            mime_type=file.content_type,
            is_video=is_video_file(stored_path),
        )
        record = await self.store.create(JobRecord.create(job_id, job_input, options))
        logger.info(
            f"Job submitted | Job={short_job_id(job_id)} | "
            + format_details(file=filename, size=size, tier=options.tier.value, report=options.generate_report)
        )
        return record, api_key

    # ------------------------------------------------------------------
    # Chunked
    # ------------------------------------------------------------------

    async def init_upload(self, request: InitUploadRequest) -> UploadSession:
        self.resolve_api_key(request.api_key)
        try:
            return await self.assembler.init(
                filename=Path(request.filename).name,
                size=request.file_size,
                mime_type=request.file_type,
                options=request.model_dump(mode="json", include=_OPTION_FIELDS),
                api_key=request.api_key,
            )
        except UploadError as e:
            raise to_api_error(e) from e

    async def put_chunk(self, job_id: str, index: int, data: bytes, total_chunks: int | None) -> PartReceipt:
        try:
            return await self.assembler.put_part(job_id, index, data, total_parts=total_chunks)
        except UploadError as e:
            raise to_api_error(e) from e

    async def submit_uploaded(self, job_id: str, api_key: str | None = None) -> tuple[JobRecord, str]:
        """Create the job for an assembled upload; 409 when incomplete or already started."""
        try:
            session = await self.assembler.get_session(job_id)
        except UploadError as e:
            raise to_api_error(e) from e

        resolved_key = self.resolve_api_key(api_key or session.api_key)
        options = self.build_options(ProcessingOptionsRequest.model_validate(session.options))

        try:
            session = await self.assembler.claim_for_processing(job_id)
        except UploadError as e:
            raise to_api_error(e) from e

        job_input = JobInput(
            original_filename=session.filename,
            stored_path=session.assembled_path or "",
            size=session.size,
            mime_type=session.mime_type,
            is_video=is_video_file(session.assembled_path or session.filename),
        )
        record = await self.store.create(JobRecord.create(job_id, job_input, options))
        logger.info(
            f"Job submitted from upload | Job={short_job_id(job_id)} | "
            + format_details(file=session.filename, size=session.size, tier=options.tier.value)
        )
        return record, resolved_key

    def start(self, job_id: str, api_key: str) -> None:
        self.runner.start(job_id, api_key)
