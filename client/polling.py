"""Polling controller: tracks one batch job from upload to a terminal phase."""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from api.schemas.responses import BatchCheckResultsResponse, BatchCheckSummary, CredentialResult
from client.api_client import CLIENT_ERROR, ApiError, Err, LeakCheckApiClient
from client.progress import ProgressEstimator
from shared.config import settings

logger = logging.getLogger(__name__)

ABANDONED_MESSAGE = "The job was abandoned due to inactivity. Please try again."
NAVIGATION_WARNING = "You have an active credential check in progress. Are you sure you want to leave?"


class Phase(str, Enum):
    """Coarse client-side view of a job."""
    IDLE = "idle"
    UPLOADING = "uploading"
    INITIALIZING = "initializing"
    PROCESSING = "processing"
    DONE = "done"
    ABANDONED = "abandoned"
    ERROR = "error"


TERMINAL_PHASES = frozenset({Phase.DONE, Phase.ABANDONED, Phase.ERROR})


def estimate_line_count(data: bytes, sample_bytes: int = None) -> int:
    """Approximate number of credentials from the head of the file."""
    sample_bytes = sample_bytes or settings.estimate_sample_bytes
    text = data[:sample_bytes].decode("utf-8", errors="ignore")
    return sum(1 for line in text.splitlines() if line.strip())


@dataclass
class PollingState:
    """Ephemeral state of one tracking session."""
    job_id: Optional[str] = None
    poll_count: int = 0
    network_failures: int = 0


@dataclass
class PollingView:
    """What the presentation layer renders."""
    phase: Phase
    job_id: Optional[str]
    progress_percentage: float
    eta: str
    summary: Optional[BatchCheckSummary] = None
    results: List[CredentialResult] = field(default_factory=list)
    estimated_total: int = 0
    message: Optional[str] = None
    warning: Optional[str] = None


class PollingController:
    """
    Polls a job's status at a fixed interval until it reaches a terminal phase.

    Polling runs as one owned asyncio task. Each tick awaits its request
    before sleeping out the rest of the interval, so there is never more
    than one snapshot fetch in flight. ``stop`` is the single way to end it.
    """

    def __init__(
        self,
        api: LeakCheckApiClient,
        interval: float = None,
        max_network_failures: int = None,
        estimator: ProgressEstimator = None,
        on_update: Callable[[PollingView], None] = None
    ):
        self.api = api
        self.interval = interval if interval is not None else settings.poll_interval
        self.max_network_failures = max_network_failures or settings.max_network_failures
        self.estimator = estimator or ProgressEstimator()
        self.on_update = on_update

        self.phase = Phase.IDLE
        self.state = PollingState()
        self.snapshot: Optional[BatchCheckResultsResponse] = None
        self.estimated_total = 0
        self.message: Optional[str] = None
        self.warning: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        # Bumped by stop(); an upload that returns into a newer session is dropped
        self._session = 0

    @property
    def job_id(self) -> Optional[str]:
        return self.state.job_id

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def navigation_warning(self) -> Optional[str]:
        """Message to show if the user tries to leave mid-check."""
        if self.phase in (Phase.UPLOADING, Phase.PROCESSING):
            return NAVIGATION_WARNING
        return None

    @property
    def view(self) -> PollingView:
        summary = self.snapshot.summary if self.snapshot else None
        return PollingView(
            phase=self.phase,
            job_id=self.state.job_id,
            progress_percentage=self.estimator.percentage,
            eta=self.estimator.eta(),
            summary=summary,
            results=list(self.snapshot.results) if self.snapshot else [],
            estimated_total=self.estimated_total,
            message=self.message,
            warning=self.warning
        )

    def _notify(self):
        if self.on_update is not None:
            self.on_update(self.view)

    async def submit(self, data: bytes, filename: str = "credentials.txt") -> Phase:
        """Upload a credential file and start tracking the created job."""
        await self.reset()
        session = self._session

        estimated_total = estimate_line_count(data)
        self.estimated_total = estimated_total
        self.phase = Phase.UPLOADING
        self._notify()

        result = await self.api.upload_batch(data, filename)
        if session != self._session or self.phase != Phase.UPLOADING:
            logger.info("Upload finished after the session was reset, not tracking")
            return self.phase

        if isinstance(result, Err):
            self._fail(result.error)
            return self.phase

        self.track(result.value.job_id, estimated_total)
        return self.phase

    def track(self, job_id: str, estimated_total: int = 0):
        """Start polling an already-created job.

        ``estimated_total`` is the client-side line estimate; without one a
        job that completes with nothing processed is reported as done.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()

        self.estimated_total = estimated_total
        self.state = PollingState(job_id=job_id)
        self.estimator.reset()
        self.snapshot = None
        self.message = None
        self.warning = None
        self.phase = Phase.INITIALIZING
        self._notify()

        self._task = asyncio.create_task(self._poll_loop(job_id), name=f"poll-{job_id}")

    async def stop(self):
        """Cancel the polling task, if any, and drop any upload still in flight."""
        self._session += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Called from on_update inside the loop; the loop exits on its next check
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def reset(self):
        """Clear the job id and all polling state; polling stops immediately."""
        await self.stop()
        self.state = PollingState()
        self.estimator.reset()
        self.snapshot = None
        self.estimated_total = 0
        self.message = None
        self.warning = None
        self.phase = Phase.IDLE

    async def wait(self) -> Phase:
        """Wait for polling to end and return the final phase."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.phase

    async def _poll_loop(self, job_id: str):
        try:
            await self._poll(job_id)
        except Exception as e:
            logger.exception(f"Polling for job {job_id} crashed")
            if self.state.job_id == job_id and self.phase not in TERMINAL_PHASES:
                self._fail(ApiError(code=CLIENT_ERROR, message=f"Unexpected error while tracking the job: {e}"))

    async def _poll(self, job_id: str):
        loop = asyncio.get_running_loop()

        while self.state.job_id == job_id:
            started = loop.time()
            result = await self.api.get_batch_status(job_id)

            # The job id may have been cleared or replaced while the request was in flight
            if self.state.job_id != job_id:
                return

            self._handle_result(result)
            if self.phase in TERMINAL_PHASES or self.state.job_id != job_id:
                return

            await asyncio.sleep(max(0.0, self.interval - (loop.time() - started)))

    def _handle_result(self, result):
        if isinstance(result, Err):
            self._handle_error(result.error)
            return

        snapshot: BatchCheckResultsResponse = result.value
        summary = snapshot.summary

        self.state.poll_count += 1
        self.state.network_failures = 0
        self.warning = None
        self.snapshot = snapshot
        self.estimator.record(summary)

        if summary.completed:
            if summary.total_processed == 0 and self.estimated_total > 0:
                logger.warning(f"Job {self.state.job_id} was abandoned by the server")
                self.phase = Phase.ABANDONED
                self.message = ABANDONED_MESSAGE
                self.estimator.reset()
            else:
                logger.info(f"Job {self.state.job_id} completed after {self.state.poll_count} polls")
                self.phase = Phase.DONE
        elif summary.total_processed > 0:
            self.phase = Phase.PROCESSING

        self._notify()

    def _handle_error(self, error: ApiError):
        if error.is_network_error:
            self.state.network_failures += 1
            if self.state.network_failures < self.max_network_failures:
                # Retried by the normal cadence
                self.warning = error.message
                self._notify()
                return
        self._fail(error)

    def _fail(self, error: ApiError):
        logger.warning(f"Polling for job {self.state.job_id} stopped: {error.code} {error.message}")
        self.phase = Phase.ERROR
        self.message = error.message
        self._notify()
