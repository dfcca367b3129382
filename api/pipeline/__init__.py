"""Job pipeline: state machine, orchestration, background runner and push events"""

from api.pipeline.cancellation import CancellationToken, JobCancelledError
from api.pipeline.events import JobEventBus, build_status_event, encode_sse, split_event
from api.pipeline.orchestrator import JobOrchestrator
from api.pipeline.runner import JobRunner
from api.pipeline.streaming import stream_job_events

__all__ = [
    "CancellationToken",
    "JobCancelledError",
    "JobEventBus",
    "JobOrchestrator",
    "JobRunner",
    "build_status_event",
    "encode_sse",
    "split_event",
    "stream_job_events",
]
