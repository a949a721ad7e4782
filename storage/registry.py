"""Process-wide job store and processor registry."""
from typing import Optional

from storage.job_store import JobStore


class StoreRegistry:
    """Holds the single in-process JobStore for the running service."""

    _store: Optional[JobStore] = None

    @classmethod
    def init_store(cls) -> JobStore:
        """Initialize the job store."""
        if cls._store is None:
            cls._store = JobStore()
        return cls._store

    @classmethod
    def get_store(cls) -> JobStore:
        """Get the job store instance."""
        if cls._store is None:
            cls.init_store()
        return cls._store

    @classmethod
    def set_store(cls, store: JobStore) -> None:
        cls._store = store

    @classmethod
    def close(cls) -> None:
        """Drop the job store; all in-flight job state is lost."""
        cls._store = None


# Convenience functions
async def get_job_store() -> JobStore:
    """Dependency for getting the job store."""
    return StoreRegistry.get_store()
