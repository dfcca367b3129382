"""Job request schemas"""

from pydantic import BaseModel, Field, field_validator

from api.schemas.common import BASE_MODEL_CONFIG
from config.settings import get_settings
from gemini_module import Tier


def _processing():
    return get_settings().processing


class ProcessingOptionsRequest(BaseModel):
    """Processing options shared by single-shot and chunked submission."""

    model_config = BASE_MODEL_CONFIG

    tier: Tier = Field(
        default_factory=lambda: Tier(get_settings().pipeline.default_tier),
        description="Model quality tier",
    )
    screenshot_count: int = Field(
        default_factory=lambda: _processing().screenshot_count_default,
        ge=1,
        description="Screenshots sampled from video sources",
    )
    audio_chunk_minutes: int = Field(
        default_factory=lambda: _processing().segment_minutes_default,
        ge=1,
        description="Audio segment length for transcription (minutes)",
    )
    generate_report: bool = Field(False, description="Also produce the structured report")
    instructions: str | None = Field(None, description="Free-text guidance embedded in every prompt")
    api_key: str | None = Field(None, repr=False, description="Gemini API key for this job")

    @field_validator("tier", mode="before")
    @classmethod
    def normalize_tier(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("screenshot_count")
    @classmethod
    def check_screenshot_count(cls, v: int) -> int:
        limit = _processing().screenshot_count_max
        if v > limit:
            raise ValueError(f"screenshot_count must be between 1 and {limit}")
        return v

    @field_validator("audio_chunk_minutes")
    @classmethod
    def check_audio_chunk_minutes(cls, v: int) -> int:
        limit = _processing().segment_minutes_max
        if v > limit:
            raise ValueError(f"audio_chunk_minutes must be between 1 and {limit}")
        return v

    @field_validator("instructions")
    @classmethod
    def truncate_instructions(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v[: _processing().instructions_max_length] or None

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str | None) -> str | None:
        return v.strip() or None if v else None


class InitUploadRequest(ProcessingOptionsRequest):
    """Begin a chunked upload."""

    filename: str = Field(..., min_length=1, max_length=255, description="Original file name")
    file_size: int = Field(..., gt=0, description="Total size in bytes")
    file_type: str | None = Field(None, description="MIME type reported by the client")


class ProcessUploadedRequest(BaseModel):
    """Start processing an assembled chunked upload."""

    model_config = BASE_MODEL_CONFIG

    stream_response: bool = Field(False, description="Answer with an SSE stream instead of the job id")
    api_key: str | None = Field(None, repr=False, description="Overrides the key given at init-upload")
