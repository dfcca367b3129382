"""Job record: the durable, polled state of one processing request"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from gemini_module.tiers import Tier


def utc_now() -> datetime:
    return datetime.now(UTC)


class JobStatus(StrEnum):
    """Aggregate job status (forward-only, see api.pipeline.state_machine)."""

    QUEUED = "queued"
    DESCRIPTION_IN_PROGRESS = "description_in_progress"
    DESCRIPTION_COMPLETE = "description_complete"
    TRANSCRIPTION_IN_PROGRESS = "transcription_in_progress"
    TRANSCRIPTION_COMPLETE = "transcription_complete"
    REPORT_IN_PROGRESS = "report_in_progress"
    REPORT_COMPLETE = "report_complete"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class StageType(StrEnum):
    DESCRIPTION = "description"
    TRANSCRIPTION = "transcription"
    REPORT = "report"


class StageStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class InvalidTransitionError(ValueError):
    """Backward or skipping move of a job or stage status."""

    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition for {entity}: {current} → {target}")


_STAGE_TRANSITIONS: dict[StageStatus, set[StageStatus]] = {
    StageStatus.PENDING: {StageStatus.IN_PROGRESS, StageStatus.SKIPPED, StageStatus.FAILED},
    StageStatus.IN_PROGRESS: {StageStatus.COMPLETED, StageStatus.FAILED},
    StageStatus.COMPLETED: set(),
    StageStatus.FAILED: set(),
    StageStatus.SKIPPED: set(),
}


class JobStage(BaseModel):
    """Sub-status of one pipeline stage (FSM model)."""

    stage_type: StageType
    status: StageStatus = StageStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)

    def _move(self, target: StageStatus) -> None:
        if target not in _STAGE_TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"stage {self.stage_type.value}", self.status.value, target.value)
        self.status = target

    def mark_in_progress(self) -> None:
        """FSM: PENDING → IN_PROGRESS."""
        self._move(StageStatus.IN_PROGRESS)
        self.started_at = utc_now()

    def mark_completed(self, meta: dict[str, Any] | None = None) -> None:
        """FSM: IN_PROGRESS → COMPLETED."""
        self._move(StageStatus.COMPLETED)
        self.completed_at = utc_now()
        if meta:
            self.meta.update(meta)

    def mark_failed(self, reason: str) -> None:
        """FSM: PENDING/IN_PROGRESS → FAILED."""
        self._move(StageStatus.FAILED)
        self.completed_at = utc_now()
        self.error = reason

    def mark_skipped(self) -> None:
        """FSM: PENDING → SKIPPED."""
        self._move(StageStatus.SKIPPED)

    @property
    def is_finished(self) -> bool:
        return not _STAGE_TRANSITIONS[self.status]


class JobInput(BaseModel):
    """Descriptor of the reconstructed source file."""

    original_filename: str
    stored_path: str = ""
    size: int = 0
    mime_type: str | None = None
    is_video: bool | None = None
    duration: float | None = None


class JobOptions(BaseModel):
    """Processing options fixed at submission."""

    tier: Tier = Tier.BUSINESS
    screenshot_count: int = Field(default=4, ge=1, le=20)
    segment_minutes: int = Field(default=10, ge=1, le=30)
    overlap_minutes: float = Field(default=1.0, ge=0.0)
    generate_report: bool = False
    instructions: str | None = None


class JobOutputs(BaseModel):
    """Artifact file names, relative to the job directory."""

    description: str | None = None
    transcription: str | None = None
    report: str | None = None

    def produced(self) -> dict[str, str]:
        return {kind: name for kind, name in self.model_dump().items() if name}


class JobError(BaseModel):
    error: str
    stage: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class JobRecord(BaseModel):
    """Sole durable source of truth for a job; persisted as result.json and returned by polling."""

    model_config = ConfigDict(validate_assignment=True)

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = Field(default=0, ge=0, le=100)
    message: str = "Job queued"
    input: JobInput
    options: JobOptions = Field(default_factory=JobOptions)
    stages: list[JobStage] = Field(default_factory=list)

    description: str | None = None
    transcription: str | None = None
    report: str | None = None
    outputs: JobOutputs = Field(default_factory=JobOutputs)
    download_links: dict[str, str] = Field(default_factory=dict)

    error: JobError | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def create(cls, job_id: str, job_input: JobInput, options: JobOptions) -> "JobRecord":
        """New queued job with one pending sub-status per stage (report skipped when disabled)."""
        stages = [JobStage(stage_type=StageType.DESCRIPTION), JobStage(stage_type=StageType.TRANSCRIPTION)]
        report_stage = JobStage(stage_type=StageType.REPORT)
        if not options.generate_report:
            report_stage.mark_skipped()
        stages.append(report_stage)
        return cls(job_id=job_id, input=job_input, options=options, stages=stages)

    def get_stage(self, stage_type: StageType) -> JobStage:
        for stage in self.stages:
            if stage.stage_type == stage_type:
                return stage
        raise KeyError(stage_type.value)

    def current_stage(self) -> StageType | None:
        """Stage currently in progress, if any."""
        for stage in self.stages:
            if stage.status == StageStatus.IN_PROGRESS:
                return stage.stage_type
        return None

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
