"""Job submission, polling and result download endpoints"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from api.dependencies import get_app_settings, get_event_bus, get_job_service, get_runner, get_store
from api.pipeline.events import JobEventBus
from api.pipeline.runner import JobRunner
from api.pipeline.streaming import stream_job_events
from api.schemas.common import ErrorResponse
from api.schemas.job import JobSubmittedResponse, ProcessingOptionsRequest
from api.services.job_service import JobService
from api.shared.enums import ResultKind
from api.shared.exceptions import NotFoundError
from config.settings import Settings
from file_storage import JobStore
from logger import get_logger

router = APIRouter(prefix="/api", tags=["Jobs"])
logger = get_logger("jobs")

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


def parse_options(values: dict) -> ProcessingOptionsRequest:
    """Validate form fields as processing options; errors surface as 422."""
    try:
        return ProcessingOptionsRequest.model_validate({k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e


def job_response(
    job_id: str,
    api_key: str,
    stream: bool,
    service: JobService,
    store: JobStore,
    events: JobEventBus,
    runner: JobRunner,
    settings: Settings,
):
    """Either start the job and return its id, or start it from inside an SSE stream."""
    if not stream:
        service.start(job_id, api_key)
        body = JobSubmittedResponse(job_id=job_id, message="Processing started")
        return JSONResponse(status_code=202, content=body.model_dump())

    return StreamingResponse(
        stream_job_events(
            job_id,
            store,
            events,
            settings.pipeline,
            runner=runner,
            start=lambda: service.start(job_id, api_key),
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post(
    "/process",
    status_code=202,
    response_model=JobSubmittedResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def process_media(
    file: UploadFile = File(..., description="Meeting recording (mp4, webm, mp3, wav)"),
    tier: str | None = Form(None),
    screenshot_count: int | None = Form(None),
    audio_chunk_minutes: int | None = Form(None),
    generate_report: bool = Form(False),
    stream_response: bool = Form(False),
    instructions: str | None = Form(None),
    api_key: str | None = Form(None),
    service: JobService = Depends(get_job_service),
    store: JobStore = Depends(get_store),
    events: JobEventBus = Depends(get_event_bus),
    runner: JobRunner = Depends(get_runner),
    settings: Settings = Depends(get_app_settings),
):
    """Single-shot submission: upload, then process in the background."""
    options = parse_options(
        {
            "tier": tier,
            "screenshot_count": screenshot_count,
            "audio_chunk_minutes": audio_chunk_minutes,
            "generate_report": generate_report,
            "instructions": instructions,
            "api_key": api_key,
        }
    )
    record, resolved_key = await service.submit_single(file, options)
    return job_response(record.job_id, resolved_key, stream_response, service, store, events, runner, settings)


@router.get("/jobs/{job_id}", responses={404: {"model": ErrorResponse}})
async def get_job(job_id: str, store: JobStore = Depends(get_store)):
    """Full job record, as persisted."""
    record = await store.get(job_id)
    if record is None:
        raise NotFoundError("Job", job_id)
    return record.to_json_dict()


@router.get(
    "/results/{job_id}/{kind}",
    response_class=PlainTextResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def download_result(job_id: str, kind: ResultKind, store: JobStore = Depends(get_store)):
    """Download one produced artifact as a markdown attachment."""
    record = await store.get(job_id)
    if record is None:
        raise NotFoundError("Job", job_id)

    content = await store.read_artifact(job_id, kind.value)
    if content is None:
        raise NotFoundError(f"{kind.value.capitalize()} result", job_id)

    return PlainTextResponse(
        content,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{job_id}_{kind.value}.md"'},
    )
