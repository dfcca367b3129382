"""Job status transitions and progress values"""

from logger import format_status_change, get_logger
from models.job import InvalidTransitionError, JobRecord, JobStatus

logger = get_logger("pipeline")

# Forward order; report statuses are skipped when no report is requested
STATUS_ORDER: list[JobStatus] = [
    JobStatus.QUEUED,
    JobStatus.DESCRIPTION_IN_PROGRESS,
    JobStatus.DESCRIPTION_COMPLETE,
    JobStatus.TRANSCRIPTION_IN_PROGRESS,
    JobStatus.TRANSCRIPTION_COMPLETE,
    JobStatus.REPORT_IN_PROGRESS,
    JobStatus.REPORT_COMPLETE,
    JobStatus.COMPLETED,
]

STATUS_PROGRESS: dict[JobStatus, int] = {
    JobStatus.QUEUED: 0,
    JobStatus.DESCRIPTION_IN_PROGRESS: 25,
    JobStatus.DESCRIPTION_COMPLETE: 40,
    JobStatus.TRANSCRIPTION_IN_PROGRESS: 45,
    JobStatus.TRANSCRIPTION_COMPLETE: 80,
    JobStatus.REPORT_IN_PROGRESS: 85,
    JobStatus.REPORT_COMPLETE: 95,
    JobStatus.COMPLETED: 100,
}

PROGRESS_PROBED = 10
PROGRESS_DECOMPOSED = 20


def transcription_progress(done: int, total: int) -> int:
    """Linear 45 → 80 over the chunk count."""
    start = STATUS_PROGRESS[JobStatus.TRANSCRIPTION_IN_PROGRESS]
    end = STATUS_PROGRESS[JobStatus.TRANSCRIPTION_COMPLETE]
    if total <= 0:
        return start
    return start + round((end - start) * min(done, total) / total)


def next_statuses(current: JobStatus, generate_report: bool) -> set[JobStatus]:
    """Statuses reachable in one step from ``current``."""
    if current.is_terminal:
        return set()

    index = STATUS_ORDER.index(current)
    allowed = {STATUS_ORDER[index + 1], JobStatus.FAILED}
    if current == JobStatus.TRANSCRIPTION_COMPLETE and not generate_report:
        allowed = {JobStatus.COMPLETED, JobStatus.FAILED}
    return allowed


def can_transition(current: JobStatus, target: JobStatus, generate_report: bool = True) -> bool:
    return target in next_statuses(current, generate_report)


def advance(record: JobRecord, target: JobStatus, message: str, progress: int | None = None) -> JobRecord:
    """Move ``record`` to ``target``; raises InvalidTransitionError on backward or skipping moves."""
    current = record.status
    if not can_transition(current, target, record.options.generate_report):
        raise InvalidTransitionError("job", current.value, target.value)

    record.status = target
    record.message = message
    if target != JobStatus.FAILED:
        record.progress = max(record.progress, STATUS_PROGRESS[target] if progress is None else progress)

    logger.info(format_status_change("Job", current.value, target.value))
    return record


def set_progress(record: JobRecord, progress: int, message: str | None = None) -> JobRecord:
    """Update progress within the current status; never decreases."""
    if record.status.is_terminal:
        raise InvalidTransitionError("job", record.status.value, f"progress {progress}")
    record.progress = max(record.progress, min(progress, 100))
    if message:
        record.message = message
    return record
