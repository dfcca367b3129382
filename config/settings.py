"""Unified application settings - single source of truth for all configuration"""

import warnings
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MB = 1024 * 1024

# ============================================================================
# APP SETTINGS
# ============================================================================


class AppSettings(BaseSettings):
    """Application-level settings"""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    name: str = Field(default="Offmute API", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")
    description: str = Field(
        default="Meeting recording description, diarized transcription and report generation",
        description="Application description",
    )
    debug: bool = Field(default=False, description="Debug mode")


# ============================================================================
# SERVER SETTINGS
# ============================================================================


class ServerSettings(BaseSettings):
    """Server settings"""

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        case_sensitive=False,
    )

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=6543, ge=1, le=65535, description="Server port")
    reload: bool = Field(default=False, description="Auto-reload on code changes")

    # API Documentation
    docs_url: str = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str = Field(default="/openapi.json", description="OpenAPI schema URL")

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials in CORS")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed HTTP methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed HTTP headers")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v


# ============================================================================
# REDIS SETTINGS
# ============================================================================


class RedisSettings(BaseSettings):
    """Redis settings (used by the redis upload session backend)"""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    db: int = Field(default=0, ge=0, le=15, description="Redis database number")
    password: str = Field(default="", description="Redis password (optional)")
    key_prefix: str = Field(default="offmute", description="Prefix for all keys written by the service")

    @property
    def url(self) -> str:
        """Redis URL"""
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


# ============================================================================
# SECURITY SETTINGS
# ============================================================================


class SecuritySettings(BaseSettings):
    """Rate limiting settings"""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        case_sensitive=False,
    )

    rate_limit_enabled: bool = Field(default=True, description="Enable rate limiting")
    rate_limit_per_minute: int = Field(default=10, ge=1, description="Requests per minute limit")
    rate_limit_per_hour: int = Field(default=300, ge=1, description="Requests per hour limit")
    rate_limit_exempt_paths: list[str] = Field(
        default=["/health", "/api/upload-chunk", "/api/jobs"],
        description="Path prefixes that bypass rate limiting",
    )

    @field_validator("rate_limit_exempt_paths", mode="before")
    @classmethod
    def parse_exempt_paths(cls, v):
        """Parse exempt paths from comma-separated string"""
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> "SecuritySettings":
        """Hourly limit must not be tighter than the minute one"""
        if self.rate_limit_per_hour < self.rate_limit_per_minute:
            raise ValueError("rate_limit_per_hour must be >= rate_limit_per_minute")
        return self


# ============================================================================
# STORAGE SETTINGS
# ============================================================================


class StorageSettings(BaseSettings):
    """Job storage and retention settings"""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )

    type: Literal["LOCAL"] = Field(default="LOCAL", description="Storage backend type")
    jobs_dir: str = Field(default="uploads", description="Root directory for per-job working directories")
    index_file: str = Field(default="index.json", description="Job index file name (inside jobs_dir)")
    local_max_size_gb: int | None = Field(default=None, ge=1, description="Max local storage size (GB)")

    retention_days: int = Field(default=7, ge=1, le=365, description="Days a job is kept before reclaim")
    retention_sweep_interval_seconds: int = Field(
        default=86400,
        ge=60,
        description="Minimum time between two retention sweeps",
    )

    @field_validator("jobs_dir")
    @classmethod
    def ensure_directory_exists(cls, v: str) -> str:
        """Ensure directory exists or can be created"""
        path = Path(v)
        if not path.exists():
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                warnings.warn(f"Could not create directory {v}: {e}", stacklevel=2)
        return v


# ============================================================================
# UPLOAD SETTINGS
# ============================================================================


class UploadSettings(BaseSettings):
    """Single-shot and chunked upload settings"""

    model_config = SettingsConfigDict(
        env_prefix="UPLOAD_",
        case_sensitive=False,
    )

    max_file_size_mb: int = Field(default=2048, ge=1, description="Max declared source size (MB)")
    chunk_size_mb: int = Field(default=5, ge=1, description="Part size announced to clients (MB)")
    max_chunk_size_mb: int = Field(default=10, ge=1, description="Max accepted size of a single part (MB)")
    session_ttl_seconds: int = Field(default=7200, ge=60, description="Uncompleted session lifetime")
    session_backend: Literal["memory", "redis"] = Field(default="memory", description="Upload session store")

    allowed_extensions: list[str] = Field(
        default=[".mp4", ".webm", ".mp3", ".wav"],
        description="Accepted source file extensions",
    )
    allowed_mime_types: list[str] = Field(
        default=["video/mp4", "video/webm", "audio/mpeg", "audio/wav", "audio/webm"],
        description="Accepted source MIME types",
    )

    @field_validator("allowed_extensions", "allowed_mime_types", mode="before")
    @classmethod
    def parse_list(cls, v):
        """Parse list from comma-separated string"""
        if isinstance(v, str):
            return [item.strip().lower() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def validate_chunk_sizes(self) -> "UploadSettings":
        """Announced part size must fit under the per-part ceiling"""
        if self.chunk_size_mb > self.max_chunk_size_mb:
            raise ValueError("chunk_size_mb must be <= max_chunk_size_mb")
        return self

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * MB

    @property
    def chunk_size_bytes(self) -> int:
        return self.chunk_size_mb * MB

    @property
    def max_chunk_size_bytes(self) -> int:
        return self.max_chunk_size_mb * MB


# ============================================================================
# PROCESSING SETTINGS
# ============================================================================


class ProcessingSettings(BaseSettings):
    """Media decomposition settings"""

    model_config = SettingsConfigDict(
        env_prefix="PROCESSING_",
        case_sensitive=False,
    )

    # Request parameter defaults and bounds
    screenshot_count_default: int = Field(default=4, ge=1, le=20, description="Default screenshot count")
    screenshot_count_max: int = Field(default=20, ge=1, description="Max screenshot count")
    segment_minutes_default: int = Field(default=10, ge=1, le=30, description="Default audio segment length")
    segment_minutes_max: int = Field(default=30, ge=1, description="Max audio segment length")
    overlap_minutes: float = Field(default=1.0, ge=0.0, description="Overlap between adjacent segments")
    tag_minutes: float = Field(default=20.0, gt=0.0, description="Length of the tag sample (minutes)")
    instructions_max_length: int = Field(default=2000, ge=0, description="User instructions are truncated to this")

    # FFmpeg settings
    ffmpeg_concurrency: int = Field(default=4, ge=1, description="Parallel ffmpeg subprocesses per job")
    audio_codec: str = Field(default="libmp3lame", description="Audio codec for segments")
    audio_bitrate: str = Field(default="192k", description="Audio bitrate for segments")
    audio_sample_rate: int = Field(default=44100, ge=8000, le=96000, description="Sample rate for segments (Hz)")
    screenshot_size: str = Field(default="1280x720", description="Screenshot frame size")

    @field_validator("screenshot_size")
    @classmethod
    def validate_screenshot_size(cls, v: str) -> str:
        """Validate WIDTHxHEIGHT format"""
        width, _, height = v.partition("x")
        if not (width.isdigit() and height.isdigit()):
            raise ValueError(f"Invalid screenshot size: {v} (expected WIDTHxHEIGHT)")
        return v

    def effective_overlap(self, segment_minutes: float) -> float:
        """Overlap actually applied to a segment length (at most half a segment)."""
        return min(self.overlap_minutes, segment_minutes / 2)


# ============================================================================
# PIPELINE SETTINGS
# ============================================================================


class PipelineSettings(BaseSettings):
    """Job orchestration settings"""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        case_sensitive=False,
    )

    default_tier: Literal["first", "business", "economy", "budget", "experimental"] = Field(
        default="business", description="Tier used when the request does not name one"
    )
    report_concurrency: int = Field(default=8, ge=1, description="Parallel report section calls")
    cancel_on_disconnect: bool = Field(
        default=False,
        description="Cancel the job when its push-stream client disconnects",
    )
    keep_intermediates: bool = Field(default=False, description="Keep segments and screenshots after the job ends")
    sse_max_event_bytes: int = Field(default=10000, ge=1024, description="Event size that triggers content split")
    sse_truncate_chars: int = Field(default=1000, ge=100, description="Artifact preview length in split events")
    sse_keepalive_seconds: float = Field(default=15.0, gt=0, description="Comment frame interval on idle streams")


# ============================================================================
# MAIN SETTINGS
# ============================================================================


class Settings(BaseSettings):
    """Main application settings - single source of truth"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    @model_validator(mode="after")
    def validate_segment_bounds(self) -> "Settings":
        """Default segment length must leave room for the overlap"""
        if self.processing.segment_minutes_default > self.processing.segment_minutes_max:
            raise ValueError("processing.segment_minutes_default must be <= processing.segment_minutes_max")
        if self.processing.screenshot_count_default > self.processing.screenshot_count_max:
            raise ValueError("processing.screenshot_count_default must be <= processing.screenshot_count_max")
        return self


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)"""
    global _settings_instance
    _settings_instance = None
