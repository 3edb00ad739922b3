"""Single-worker async job queue for image generation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from deckassist.types import GenerationJob, GenerationRequest, JobStatus

logger = logging.getLogger(__name__)

JobHandler = Callable[[GenerationRequest], Awaitable[str]]


class JobQueue:
    """Accepts generation requests and runs them one at a time, in order.

    ``submit`` registers a pending job and returns its id without waiting.
    One consumer task drains the work queue; a job that raises is marked
    failed and the worker moves on. The registry lives only for the process
    lifetime and is never pruned automatically.
    """

    def __init__(self, handler: JobHandler, max_pending: int = 0) -> None:
        self._handler = handler
        self._jobs: dict[str, GenerationJob] = {}
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self._worker: asyncio.Task[None] | None = None
        self._active_job: str | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def active_job(self) -> str | None:
        """Id of the job currently processing, if any."""
        return self._active_job

    def start(self) -> None:
        """Start the consumer task. A second call while running is a no-op."""
        if self.running:
            return
        self._worker = asyncio.get_running_loop().create_task(
            self._drain(), name="deckassist-job-worker"
        )
        logger.debug("Job worker started")

    async def shutdown(self) -> None:
        """Stop the consumer task.

        A job interrupted mid-run is marked failed. Jobs still pending stay pending.
        """
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.debug("Job worker stopped")

    def submit(self, request: GenerationRequest) -> str:
        """Register a pending job, signal the worker and return the job id.

        Raises asyncio.QueueFull when ``max_pending`` jobs are already waiting,
        and RuntimeError outside a running event loop; neither registers a job.
        """
        self.start()
        job = GenerationJob(request=request)
        self._queue.put_nowait(job.id)
        self._jobs[job.id] = job
        logger.info("Queued generation job %s", job.id)
        return job.id

    def get_status(self, job_id: str) -> GenerationJob | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[GenerationJob]:
        """All known jobs in submission order."""
        return list(self._jobs.values())

    def remove(self, job_id: str) -> bool:
        """Drop a finished job from the registry. Active jobs are kept."""
        job = self._jobs.get(job_id)
        if job is None or not job.is_terminal:
            return False
        del self._jobs[job_id]
        return True

    async def join(self) -> None:
        """Wait until every submitted job has reached a terminal state."""
        await self._queue.join()

    async def _drain(self) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                job = self._jobs.get(job_id)
                if job is not None and job.status == JobStatus.PENDING:
                    await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: GenerationJob) -> None:
        self._active_job = job.id
        job.transition(JobStatus.PROCESSING)
        logger.debug("Processing job %s", job.id)
        try:
            job.result = await self._handler(job.request)
        except asyncio.CancelledError:
            job.error = "Worker shut down"
            job.transition(JobStatus.FAILED)
            logger.warning("Generation job %s cancelled by shutdown", job.id)
            raise
        except Exception as e:
            job.error = str(e) or type(e).__name__
            job.transition(JobStatus.FAILED)
            logger.error("Generation job %s failed: %s", job.id, job.error)
        else:
            job.transition(JobStatus.COMPLETED)
            logger.info("Generation job %s completed: %s", job.id, job.result)
        finally:
            self._active_job = None
