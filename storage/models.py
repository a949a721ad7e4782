"""Batch job model definitions."""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from shared.utils import get_utc_now, mask_credential


class JobState(str, Enum):
    """Batch job lifecycle state."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.ABANDONED, JobState.FAILED})


class TaskStatus(str, Enum):
    """Per-credential status as shown on the wire."""
    PENDING = "pending"
    CHECKED = "checked"
    ERROR = "error"


class Outcome(str, Enum):
    """Classifier verdict for one credential."""
    LEAKED = "leaked"
    NOT_LEAKED = "not_leaked"
    ERROR = "error"


@dataclass
class CredentialTask:
    """One credential check inside a batch job."""
    raw_line: str
    username: str
    password: str
    status: TaskStatus = TaskStatus.PENDING
    is_leaked: Optional[bool] = None
    message: Optional[str] = None

    def to_result(self) -> dict:
        """Wire view of the task; the password is never included."""
        return {
            "credential": mask_credential(self.username),
            "is_leaked": self.is_leaked,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass
class ClaimedTask:
    """A task index handed to exactly one worker."""
    index: int
    username: str
    password: str


@dataclass
class JobCounters:
    total: int
    leaked: int = 0
    not_leaked: int = 0
    errors: int = 0

    @property
    def processed(self) -> int:
        return self.leaked + self.not_leaked + self.errors


@dataclass
class BatchJob:
    """Unit of work: ordered credential tasks plus aggregate counters.

    Every mutation happens under ``lock``; readers take it too so a snapshot
    never observes a half-applied ``advance``.
    """
    id: str
    tasks: List[CredentialTask]
    counters: JobCounters
    state: JobState = JobState.PENDING
    created_at: datetime = field(default_factory=get_utc_now)
    last_activity_at: datetime = field(default_factory=get_utc_now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    cursor: int = 0
    writer_attached: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def total(self) -> int:
        return self.counters.total
