"""Server-sent event stream of one job's status"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

from api.pipeline.events import (
    JobEventBus,
    build_status_event,
    encode_keepalive,
    encode_sse,
    is_terminal_event,
    split_event,
)
from api.pipeline.runner import JobRunner
from api.pipeline.state_machine import STATUS_ORDER
from config.settings import PipelineSettings
from file_storage.job_store import JobStore
from logger import get_logger, short_job_id

logger = get_logger("sse")

STATUS_RANK: dict[str, int] = {status.value: rank for rank, status in enumerate(STATUS_ORDER)}


def is_stale_event(event: dict, snapshot: dict) -> bool:
    """True for an event published before ``snapshot`` was read: lower progress or an earlier status."""
    if is_terminal_event(event):
        return False
    if event.get("progress", 0) < snapshot.get("progress", 0):
        return True
    rank = STATUS_RANK.get(event.get("status"))
    return rank is not None and rank < STATUS_RANK.get(snapshot.get("status"), 0)


async def stream_job_events(
    job_id: str,
    store: JobStore,
    events: JobEventBus,
    settings: PipelineSettings,
    runner: JobRunner | None = None,
    start: Callable[[], Awaitable[None] | None] | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames until the job reaches a terminal status.

    The subscription is taken before ``start`` runs so no event is lost. The
    first frame is always the current snapshot. Events queued before the snapshot
    was read are dropped so progress never goes backwards on the wire.
    """
    queue = events.subscribe(job_id)
    finished = False
    try:
        if start is not None:
            started = start()
            if started is not None:
                await started

        record = await store.require(job_id)
        snapshot = build_status_event(record)
        for part in split_event(snapshot, settings.sse_max_event_bytes, settings.sse_truncate_chars):
            yield encode_sse(part)
        if is_terminal_event(snapshot):
            finished = True
            return

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=settings.sse_keepalive_seconds)
            except TimeoutError:
                yield encode_keepalive()
                continue
            if is_stale_event(event, snapshot):
                continue

            for part in split_event(event, settings.sse_max_event_bytes, settings.sse_truncate_chars):
                yield encode_sse(part)
            if is_terminal_event(event):
                finished = True
                return
    finally:
        events.unsubscribe(job_id, queue)
        if not finished:
            logger.info(f"Stream client disconnected | Job={short_job_id(job_id)}")
            if settings.cancel_on_disconnect and runner is not None:
                runner.cancel(job_id, "client disconnected")
