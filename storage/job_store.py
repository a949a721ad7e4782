"""In-process job store: creation, lookup, advancement, abandonment and eviction."""
import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from shared.config import settings
from shared.errors import InvalidInput, NotFound
from shared.utils import generate_job_id, get_utc_now, progress_percentage, seconds_between
from storage.models import (
    BatchJob,
    ClaimedTask,
    CredentialTask,
    JobCounters,
    JobState,
    Outcome,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class JobStore:
    """Keyed registry of batch jobs.

    The store-wide lock guards the id -> job mapping only; each job's counters,
    tasks and state are guarded by the job's own lock.
    """

    def __init__(
        self,
        max_batch_size: int = None,
        retention_seconds: float = None,
        hard_ttl_seconds: float = None
    ):
        self.max_batch_size = max_batch_size or settings.max_batch_size
        self.retention_seconds = retention_seconds if retention_seconds is not None else settings.retention_seconds
        self.hard_ttl_seconds = hard_ttl_seconds if hard_ttl_seconds is not None else settings.hard_ttl_seconds
        self._jobs: Dict[str, BatchJob] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    async def _require(self, job_id: str) -> BatchJob:
        async with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise NotFound(f"Job ID {job_id} not found")
        return job

    async def create(self, tasks: List[CredentialTask]) -> str:
        """Create a new job in PENDING state and return its id."""
        if not tasks:
            raise InvalidInput("Batch contains no credentials")
        if len(tasks) > self.max_batch_size:
            raise InvalidInput(
                f"Batch contains {len(tasks)} credentials, maximum is {self.max_batch_size:,}"
            )

        now = get_utc_now()
        job = BatchJob(
            id=generate_job_id(),
            tasks=list(tasks),
            counters=JobCounters(total=len(tasks)),
            created_at=now,
            last_activity_at=now
        )

        async with self._lock:
            self._jobs[job.id] = job

        logger.info(f"Created job {job.id} with {job.total} credentials")
        return job.id

    async def get(self, job_id: str) -> Dict:
        """Return a point-in-time snapshot of a job. Raises NotFound."""
        job = await self._require(job_id)

        async with job.lock:
            state = job.state
            if state == JobState.ABANDONED:
                # An abandoned job reads exactly like one that never started.
                counters = JobCounters(total=job.total)
                results = []
            else:
                counters = JobCounters(
                    total=job.counters.total,
                    leaked=job.counters.leaked,
                    not_leaked=job.counters.not_leaked,
                    errors=job.counters.errors
                )
                results = [task.to_result() for task in job.tasks]
            error = job.error

        processed = counters.processed
        return {
            "job_id": job_id,
            "state": state,
            "error": error,
            "total": counters.total,
            "summary": {
                "total_processed": processed,
                "total_leaked": counters.leaked,
                "total_not_leaked": counters.not_leaked,
                "total_errors": counters.errors,
                "completed": state.is_terminal,
                "progress_percentage": progress_percentage(processed, counters.total),
            },
            "results": results,
        }

    async def get_state(self, job_id: str) -> JobState:
        job = await self._require(job_id)
        async with job.lock:
            return job.state

    async def claim(self, job_id: str) -> Optional[ClaimedTask]:
        """
        Hand out the next undispatched task index, or None when there is none.

        The first claim moves the job from PENDING to PROCESSING.
        """
        job = await self._require(job_id)

        async with job.lock:
            if job.state.is_terminal or job.cursor >= job.total:
                return None

            index = job.cursor
            job.cursor += 1

            if job.state == JobState.PENDING:
                job.state = JobState.PROCESSING
                logger.info(f"Job {job_id} started processing")

            task = job.tasks[index]
            return ClaimedTask(index=index, username=task.username, password=task.password)

    async def advance(
        self,
        job_id: str,
        task_index: int,
        outcome: Outcome,
        message: Optional[str] = None
    ) -> bool:
        """
        Move one task from pending to checked/error and bump its counter.

        Returns False without touching anything if the task was already
        advanced or the job is terminal.
        """
        job = await self._require(job_id)

        async with job.lock:
            if job.state.is_terminal:
                return False
            if task_index < 0 or task_index >= job.total:
                raise InvalidInput(f"Task index {task_index} out of range for job {job_id}")

            task = job.tasks[task_index]
            if task.status != TaskStatus.PENDING:
                logger.warning(f"Task {task_index} of job {job_id} already advanced, ignoring")
                return False

            if outcome == Outcome.LEAKED:
                task.status = TaskStatus.CHECKED
                task.is_leaked = True
                job.counters.leaked += 1
            elif outcome == Outcome.NOT_LEAKED:
                task.status = TaskStatus.CHECKED
                task.is_leaked = False
                job.counters.not_leaked += 1
            else:
                task.status = TaskStatus.ERROR
                task.is_leaked = None
                job.counters.errors += 1

            task.message = message
            job.last_activity_at = get_utc_now()
            return True

    async def complete(self, job_id: str) -> bool:
        """Mark a fully processed job COMPLETED. Idempotent."""
        job = await self._require(job_id)

        async with job.lock:
            if job.state.is_terminal:
                return False
            if job.counters.processed < job.total:
                return False

            now = get_utc_now()
            job.state = JobState.COMPLETED
            job.completed_at = now
            job.last_activity_at = now

        logger.info(f"Completed job {job_id} with {job.total} credentials processed")
        return True

    async def fail(self, job_id: str, message: str) -> bool:
        """Mark a job FAILED after an unrecoverable internal fault."""
        job = await self._require(job_id)

        async with job.lock:
            if job.state.is_terminal:
                return False
            job.state = JobState.FAILED
            job.error = message
            job.completed_at = get_utc_now()

        logger.error(f"Job {job_id} failed: {message}")
        return True

    async def sweep_abandoned(self, now: datetime, idle_threshold: float) -> List[str]:
        """Abandon every non-terminal job idle for longer than idle_threshold seconds."""
        async with self._lock:
            jobs = list(self._jobs.values())

        abandoned = []
        for job in jobs:
            async with job.lock:
                if job.state not in (JobState.PENDING, JobState.PROCESSING):
                    continue
                idle = seconds_between(job.last_activity_at, now)
                if idle <= idle_threshold:
                    continue
                job.state = JobState.ABANDONED
                job.error = "Job abandoned - no progress within the idle threshold"
                job.completed_at = now
                processed = job.counters.processed

            logger.warning(
                f"Job {job.id} idle for {idle:.1f}s, marking as abandoned "
                f"after processing {processed} credentials"
            )
            abandoned.append(job.id)

        return abandoned

    async def evict(self, job_id: str, now: datetime = None) -> bool:
        """
        Remove a job that is terminal and past the retention window,
        or any job older than the hard TTL.
        """
        now = now or get_utc_now()

        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False

            expired = seconds_between(job.created_at, now) > self.hard_ttl_seconds
            past_retention = (
                job.state.is_terminal
                and job.completed_at is not None
                and seconds_between(job.completed_at, now) > self.retention_seconds
            )
            if not (expired or past_retention):
                return False

            del self._jobs[job_id]

        logger.info(f"Evicted job {job_id} ({'hard TTL' if expired else 'retention window'})")
        return True

    async def evict_expired(self, now: datetime = None) -> List[str]:
        now = now or get_utc_now()
        async with self._lock:
            job_ids = list(self._jobs.keys())
        return [job_id for job_id in job_ids if await self.evict(job_id, now)]

    async def delete(self, job_id: str) -> bool:
        """Remove a job unconditionally."""
        async with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        logger.info(f"Job {job_id} manually deleted")
        return True

    async def attach_writer(self, job_id: str) -> bool:
        """Register the single processor allowed to advance a job."""
        job = await self._require(job_id)
        async with job.lock:
            if job.writer_attached:
                return False
            job.writer_attached = True
            return True

    async def detach_writer(self, job_id: str) -> None:
        async with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return
        async with job.lock:
            job.writer_attached = False
