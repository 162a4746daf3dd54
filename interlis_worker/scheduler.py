"""Validation job scheduling and status tracking.

Jobs are queued on an unbounded asyncio queue and each dequeued job runs in
its own task, so any number of jobs are processed concurrently. The only
state shared between jobs is the JobStatusStore, which is also read by the
status endpoint.
"""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from uuid import UUID, uuid4

from interlis_worker.errors import InvalidStatusTransitionError, JobError
from interlis_worker.models.enums import JobErrorKind, Status
from interlis_worker.models.job import JobStatus

logger = logging.getLogger(__name__)

JobAction = Callable[[asyncio.Event], Awaitable[None]]

ENQUEUED_MESSAGE = "Preparing validation"
PROCESSING_MESSAGE = "Validating file"
COMPLETED_MESSAGE = "Validation successful"

# Every JobErrorKind must be listed here.
ERROR_SUMMARIES: dict[JobErrorKind, str] = {
    JobErrorKind.UNKNOWN_EXTENSION: "File extension not allowed",
    JobErrorKind.MULTIPLE_TRANSFER_FILES: "Multiple transfer files found",
    JobErrorKind.TRANSFER_FILE_NOT_FOUND: "No transfer file found",
    JobErrorKind.GEOPACKAGE: "Could not read model names from GeoPackage",
    JobErrorKind.INVALID_XML: "Invalid XML structure",
    JobErrorKind.VALIDATION_FAILED: "Data not conform to INTERLIS model",
}


class JobStatusStore:
    """Thread-safe job id → JobStatus map.

    Writes come from the job tasks, reads from status pollers that may run in
    other threads. Statuses only move forward; a new enqueue of an existing id
    starts the job over.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: dict[UUID, JobStatus] = {}

    def enqueue(self, job_id: UUID) -> None:
        with self._lock:
            self._jobs[job_id] = JobStatus(status=Status.ENQUEUED, status_message=ENQUEUED_MESSAGE)

    def update_status(self, job_id: UUID, status: Status, status_message: str) -> None:
        """Move a job to a later status.

        Raises:
            InvalidStatusTransitionError: If the job was never enqueued, is
                already terminal, or the new status is not ahead of the current one
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                msg = f"Job {job_id} was never enqueued"
                raise InvalidStatusTransitionError(msg)
            if current.status.is_terminal or status.rank <= current.status.rank:
                msg = f"Job {job_id} cannot move from {current.status.value} to {status.value}"
                raise InvalidStatusTransitionError(msg)
            self._jobs[job_id] = JobStatus(status=status, status_message=status_message)

    def get_status(self, job_id: UUID) -> JobStatus:
        with self._lock:
            return self._jobs.get(job_id, JobStatus.unknown())


class ValidatorService:
    """Schedules validation jobs and reports their status.

    Usage:
        service = ValidatorService()
        runner = asyncio.create_task(service.run())
        service.enqueue_job(job_id, action)
        ...
        await service.shutdown()
    """

    def __init__(self, status_store: JobStatusStore | None = None):
        self.status_store = status_store or JobStatusStore()
        self._queue: asyncio.Queue[tuple[UUID, JobAction]] = asyncio.Queue()
        self._cancel_event = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

    def enqueue_job(self, job_id: UUID, action: JobAction) -> None:
        """Record the job as enqueued and queue it for processing.

        Never blocks: the queue is unbounded. Must be called from the event
        loop running run().

        Args:
            job_id: The job identifier (callers must avoid collisions)
            action: Coroutine function doing the work; receives the
                cancellation event
        """
        self.status_store.enqueue(job_id)
        self._queue.put_nowait((job_id, action))

    def get_job_status_or_default(self, job_id: UUID) -> JobStatus:
        return self.status_store.get_status(job_id)

    async def run(self) -> None:
        """Drain the queue, starting one task per job, until cancelled."""
        logger.info("Validator service started, waiting for jobs...")
        while True:
            job_id, action = await self._queue.get()
            task = asyncio.create_task(self._process(job_id, action), name=f"job-{job_id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def shutdown(self, timeout: float = 30) -> None:
        """Signal cancellation to running jobs and wait for them to finish.

        Jobs still running after the timeout are cancelled.
        """
        logger.info(f"Stopping validator service, {len(self._tasks)} job(s) running")
        self._cancel_event.set()

        tasks = list(self._tasks)
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} job(s) that did not stop in time")
            await asyncio.gather(*pending, return_exceptions=True)

    async def _process(self, job_id: UUID, action: JobAction) -> None:
        try:
            self.status_store.update_status(job_id, Status.PROCESSING, PROCESSING_MESSAGE)
            await action(self._cancel_event)
        except JobError as e:
            summary = ERROR_SUMMARIES[e.kind]
            self._finish(job_id, Status.COMPLETED_WITH_ERRORS, summary)
            logger.info(f"Job {job_id} completed with errors: {summary}: {e}")
        except Exception as e:
            trace_id = uuid4()
            self._finish(job_id, Status.FAILED, f"Unknown error. Error ID: <{trace_id}>")
            logger.exception(
                f"Unhandled exception TraceId: <{trace_id}> Message: <{e}>",
                extra={"trace": {"id": str(trace_id)}},
            )
        else:
            self._finish(job_id, Status.COMPLETED, COMPLETED_MESSAGE)
            logger.info(f"Job {job_id} validation successful")
        finally:
            self._queue.task_done()

    def _finish(self, job_id: UUID, status: Status, status_message: str) -> None:
        try:
            self.status_store.update_status(job_id, status, status_message)
        except InvalidStatusTransitionError:
            # The id was enqueued again while this run was in flight.
            logger.warning(f"Dropping {status.value} status of superseded run of job {job_id}")
