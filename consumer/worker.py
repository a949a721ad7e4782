"""Job processor: drives a batch job through the credential classifier."""
import asyncio
import logging
from typing import List, Optional

from consumer.classifier import Classification, CredentialClassifier
from shared.config import settings
from shared.errors import NotFound, TransientClassifierError
from shared.utils import calculate_exponential_backoff
from storage.job_store import JobStore
from storage.models import ClaimedTask, JobState, Outcome

logger = logging.getLogger(__name__)


class JobProcessor:
    """Consumes one job's pending tasks with a fixed-size pool of workers.

    Workers claim task indexes from the store's cursor, so dispatch follows
    task order while completions land in whatever order the classifier
    answers. Only one processor may be attached to a job at a time.
    """

    def __init__(
        self,
        store: JobStore,
        classifier: CredentialClassifier,
        job_id: str,
        pool_size: int = None,
        classify_timeout: float = None,
        max_retry_attempts: int = None,
        retry_base_delay: float = None
    ):
        self.store = store
        self.classifier = classifier
        self.job_id = job_id
        self.pool_size = pool_size or settings.worker_pool_size
        self.classify_timeout = classify_timeout or settings.classify_timeout
        self.max_retry_attempts = (
            max_retry_attempts if max_retry_attempts is not None else settings.max_retry_attempts
        )
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.retry_base_delay
        )
        self.running = False

    async def run(self) -> Optional[JobState]:
        """Process the job until every task is claimed or the job turns terminal."""
        try:
            attached = await self.store.attach_writer(self.job_id)
        except NotFound:
            logger.warning(f"Job {self.job_id} vanished before processing started")
            return None

        if not attached:
            logger.warning(f"Job {self.job_id} already has an active processor, skipping")
            return await self.store.get_state(self.job_id)

        self.running = True
        logger.info(f"Processor for job {self.job_id} starting with {self.pool_size} workers")

        try:
            await self._run_workers()
            await self.store.complete(self.job_id)
            return await self.store.get_state(self.job_id)
        except NotFound:
            logger.info(f"Job {self.job_id} removed while processing, stopping")
            return None
        except asyncio.CancelledError:
            logger.info(f"Processor for job {self.job_id} cancelled")
            raise
        except Exception as e:
            logger.exception(f"Processor for job {self.job_id} crashed")
            await self.store.fail(self.job_id, f"Error checking batch: {e}")
            return JobState.FAILED
        finally:
            self.running = False
            await self.store.detach_writer(self.job_id)

    async def stop(self):
        """Stop claiming new tasks; in-flight checks still finish."""
        logger.info(f"Processor for job {self.job_id} stopping...")
        self.running = False

    async def _run_workers(self):
        workers: List[asyncio.Task] = [
            asyncio.create_task(self._worker_loop(n)) for n in range(self.pool_size)
        ]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

    async def _worker_loop(self, worker_number: int):
        while self.running:
            claimed = await self.store.claim(self.job_id)
            if claimed is None:
                break
            await self._process_task(claimed)
        logger.debug(f"Worker {worker_number} for job {self.job_id} finished")

    async def _process_task(self, claimed: ClaimedTask):
        """Classify a single claimed task and record its outcome."""
        result = await self._classify_with_retry(claimed)

        advanced = await self.store.advance(
            self.job_id,
            claimed.index,
            result.outcome,
            result.message
        )
        if not advanced:
            logger.debug(f"Job {self.job_id} task {claimed.index} not advanced (job terminal)")

    async def _classify_with_retry(self, claimed: ClaimedTask) -> Classification:
        """Classify with a bounded timeout and at most max_retry_attempts retries."""
        attempt = 0

        while True:
            try:
                return await asyncio.wait_for(
                    self.classifier.classify(claimed.username, claimed.password),
                    timeout=self.classify_timeout
                )
            except asyncio.TimeoutError:
                error = f"Timeout after {self.classify_timeout} seconds"
            except TransientClassifierError as e:
                error = str(e)
            except Exception as e:
                logger.error(f"Job {self.job_id} task {claimed.index} unexpected classifier error: {e}")
                return Classification(outcome=Outcome.ERROR, message=f"Error: {e}")

            if attempt >= self.max_retry_attempts:
                logger.warning(
                    f"Job {self.job_id} task {claimed.index} failed after {attempt + 1} attempts: {error}"
                )
                return Classification(outcome=Outcome.ERROR, message=f"Error: {error}")

            delay = calculate_exponential_backoff(attempt, self.retry_base_delay)
            logger.info(
                f"Retrying job {self.job_id} task {claimed.index} in {delay}s (attempt {attempt + 1})"
            )
            await asyncio.sleep(delay)
            attempt += 1
