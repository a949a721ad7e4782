"""Batch service: creates jobs and hands them to in-process processors."""
import asyncio
import logging
from typing import Dict, List

from consumer.classifier import Classification, CredentialClassifier
from consumer.worker import JobProcessor
from shared.errors import ExternalServiceError, InvalidInput, TransientClassifierError
from storage.job_store import JobStore
from storage.models import CredentialTask, Outcome

logger = logging.getLogger(__name__)


class BatchCheckService:
    """Service for submitting batch jobs and running single checks."""

    def __init__(self, store: JobStore, classifier: CredentialClassifier):
        self.store = store
        self.classifier = classifier
        self._processors: Dict[str, asyncio.Task] = {}

    async def submit(self, tasks: List[CredentialTask]) -> str:
        """Create a job and start processing it asynchronously."""
        job_id = await self.store.create(tasks)

        processor = JobProcessor(self.store, self.classifier, job_id)
        task = asyncio.create_task(processor.run(), name=f"job-{job_id}")
        self._processors[job_id] = task
        task.add_done_callback(lambda _: self._processors.pop(job_id, None))

        return job_id

    async def check_single(self, username: str, password: str) -> Classification:
        """Classify one credential synchronously, bypassing the job engine."""
        if not username.strip() or not password.strip():
            raise InvalidInput("Username and password are required")

        try:
            result = await self.classifier.classify(username, password)
        except TransientClassifierError as e:
            raise ExternalServiceError(f"Credential check failed: {e}")

        if result.outcome == Outcome.ERROR:
            raise ExternalServiceError(f"Credential check failed: {result.message}")
        return result

    async def shutdown(self):
        """Cancel all running processors."""
        tasks = list(self._processors.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} running processor(s)")
        self._processors.clear()
