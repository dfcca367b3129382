"""Job events for push listeners and their SSE encoding"""

import asyncio
import json
from collections import defaultdict
from typing import Any

from api.shared.enums import EventType, ResultKind
from logger import get_logger
from models.job import JobRecord

logger = get_logger("events")

TRUNCATION_SUFFIX = "... [content truncated for streaming]"
ARTIFACT_FIELDS = [kind.value for kind in ResultKind]
CONTENT_EVENTS = {
    ResultKind.DESCRIPTION.value: EventType.DESCRIPTION_CONTENT,
    ResultKind.TRANSCRIPTION.value: EventType.TRANSCRIPTION_CONTENT,
    ResultKind.REPORT.value: EventType.REPORT_CONTENT,
}


def build_status_event(record: JobRecord) -> dict[str, Any]:
    """Self-contained snapshot of a job for one push event."""
    event: dict[str, Any] = {
        "job_id": record.job_id,
        "status": record.status.value,
        "progress": record.progress,
        "message": record.message,
    }
    for field in ARTIFACT_FIELDS:
        value = getattr(record, field)
        if value:
            event[field] = value
    if record.error is not None:
        event["error"] = record.error.error
        event["stage"] = record.error.stage
    if record.status.is_terminal:
        event["outputs"] = record.outputs.produced()
        event["download_links"] = dict(record.download_links)
    return event


def is_terminal_event(event: dict[str, Any]) -> bool:
    return event.get("status") in ("completed", "failed")


def split_event(event: dict[str, Any], max_bytes: int = 10000, truncate_chars: int = 1000) -> list[dict[str, Any]]:
    """Fit one event into the transport.

    Events up to ``max_bytes`` of JSON pass through. Larger status events get
    artifacts truncated to ``truncate_chars``. A large terminal event becomes
    one ``*_content`` event per artifact followed by the metadata-only
    terminal event, so the stream still carries exactly one terminal event.
    """
    if len(json.dumps(event, ensure_ascii=False).encode("utf-8")) <= max_bytes:
        return [event]

    if is_terminal_event(event):
        events = [
            {"job_id": event["job_id"], "status": CONTENT_EVENTS[field].value, field: event[field]}
            for field in ARTIFACT_FIELDS
            if event.get(field)
        ]
        events.append({k: v for k, v in event.items() if k not in ARTIFACT_FIELDS})
        return events

    truncated = dict(event)
    for field in ARTIFACT_FIELDS:
        value = truncated.get(field)
        if isinstance(value, str) and len(value) > truncate_chars:
            truncated[field] = value[:truncate_chars] + TRUNCATION_SUFFIX
    return [truncated]


def encode_sse(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def encode_keepalive() -> str:
    return ": keepalive\n\n"


class JobEventBus:
    """Fan-out of job events to in-process subscribers (one queue per stream)."""

    def __init__(self):
        self._subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)

    def subscribe(self, job_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[job_id].append(queue)
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(job_id)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(job_id, None)

    def has_listeners(self, job_id: str) -> bool:
        return bool(self._subscribers.get(job_id))

    def publish(self, job_id: str, event: dict[str, Any]) -> None:
        for queue in self._subscribers.get(job_id, []):
            queue.put_nowait(event)
