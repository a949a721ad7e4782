# Storage module
from .job_store import JobStore
from .models import BatchJob, CredentialTask, JobState, Outcome, TaskStatus

__all__ = ["JobStore", "BatchJob", "CredentialTask", "JobState", "Outcome", "TaskStatus"]
