"""Background execution of jobs inside the API process"""

import asyncio

from api.pipeline.cancellation import CancellationToken
from api.pipeline.orchestrator import JobOrchestrator
from logger import get_logger, short_job_id

logger = get_logger("runner")


class JobRunner:
    """Keeps one asyncio task and cancellation token per running job."""

    def __init__(self, orchestrator: JobOrchestrator):
        self.orchestrator = orchestrator
        self._tasks: dict[str, asyncio.Task] = {}
        self._tokens: dict[str, CancellationToken] = {}

    def start(self, job_id: str, api_key: str | None) -> asyncio.Task:
        if job_id in self._tasks:
            return self._tasks[job_id]

        token = CancellationToken()
        task = asyncio.create_task(self.orchestrator.run(job_id, api_key, token), name=f"job-{job_id}")
        self._tasks[job_id] = task
        self._tokens[job_id] = token
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        logger.info(f"Job started | Job={short_job_id(job_id)}")
        return task

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(job_id, None)
        self._tokens.pop(job_id, None)
        if task.cancelled():
            logger.warning(f"Job task cancelled | Job={short_job_id(job_id)}")
        elif task.exception() is not None:
            logger.opt(exception=task.exception()).error(f"Job task crashed | Job={short_job_id(job_id)}")

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    def cancel(self, job_id: str, reason: str = "cancelled") -> bool:
        """Request cooperative cancellation; the job fails at its next stage boundary."""
        token = self._tokens.get(job_id)
        if token is None:
            return False
        token.cancel(reason)
        logger.info(f"Job cancellation requested | Job={short_job_id(job_id)} | reason={reason}")
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel everything still running, waiting up to ``timeout`` for the tasks to settle."""
        tasks = list(self._tasks.values())
        if not tasks:
            return
        logger.info(f"Stopping {len(tasks)} running job(s)")
        for token in self._tokens.values():
            token.cancel("shutdown")
        for task in tasks:
            task.cancel()
        await asyncio.wait(tasks, timeout=timeout)
