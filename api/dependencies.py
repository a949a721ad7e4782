"""FastAPI dependencies for the classifier and batch service."""
from typing import Optional

from api.services.batch_service import BatchCheckService
from consumer.classifier import CredentialClassifier, LeakCheckClient
from storage.job_store import JobStore
from storage.registry import StoreRegistry


class ServiceRegistry:
    """Manages the classifier client and the batch service for the app."""

    _classifier: Optional[CredentialClassifier] = None
    _batch_service: Optional[BatchCheckService] = None

    @classmethod
    def init(cls, classifier: CredentialClassifier = None, store: JobStore = None) -> BatchCheckService:
        """Initialize classifier and batch service (idempotent)."""
        if store is not None:
            StoreRegistry.set_store(store)
        if classifier is not None:
            cls._classifier = classifier
        if cls._classifier is None:
            cls._classifier = LeakCheckClient()
        if cls._batch_service is None:
            cls._batch_service = BatchCheckService(StoreRegistry.get_store(), cls._classifier)
        return cls._batch_service

    @classmethod
    def get_classifier(cls) -> CredentialClassifier:
        if cls._classifier is None:
            cls.init()
        return cls._classifier

    @classmethod
    def get_batch_service(cls) -> BatchCheckService:
        if cls._batch_service is None:
            cls.init()
        return cls._batch_service

    @classmethod
    async def close(cls):
        """Stop processors and close the upstream session."""
        if cls._batch_service is not None:
            await cls._batch_service.shutdown()
            cls._batch_service = None
        if cls._classifier is not None:
            close = getattr(cls._classifier, "close", None)
            if close is not None:
                await close()
            cls._classifier = None


async def get_classifier() -> CredentialClassifier:
    """Dependency for getting the credential classifier."""
    return ServiceRegistry.get_classifier()


async def get_batch_service() -> BatchCheckService:
    """Dependency for getting the batch service."""
    return ServiceRegistry.get_batch_service()
