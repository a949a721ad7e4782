"""Response schemas for API endpoints."""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class BatchCheckResponse(BaseModel):
    """Response schema for batch submission and deletion."""
    job_id: str = Field(..., description="Unique job identifier")
    message: str = Field(default="Batch job started successfully")


class CredentialResult(BaseModel):
    """Schema for a single credential result inside a batch."""
    credential: str = Field(..., description="Masked credential (username:••••••••)")
    is_leaked: Optional[bool] = Field(None, description="Leak verdict, null until checked or on error")
    status: Literal["pending", "checked", "error"] = Field(..., description="Task status")
    message: Optional[str] = Field(None, description="Classifier message or error detail")


class BatchCheckSummary(BaseModel):
    """Aggregate counters of a batch job."""
    total_processed: int = Field(..., ge=0)
    total_leaked: int = Field(..., ge=0)
    total_not_leaked: int = Field(..., ge=0)
    total_errors: int = Field(..., ge=0)
    completed: bool = Field(..., description="True once the job reached a terminal state")
    progress_percentage: float = Field(..., ge=0.0, le=100.0)


class BatchCheckResultsResponse(BaseModel):
    """Snapshot of a batch job: summary plus per-credential results."""
    summary: BatchCheckSummary
    results: List[CredentialResult] = Field(default_factory=list)


class SingleCheckResponse(BaseModel):
    """Response schema for a single credential check."""
    username: str
    is_leaked: bool
    message: str


class UpstreamStatus(BaseModel):
    """Reachability of the upstream leak-check service."""
    status: Literal["ok", "error"]
    message: str


class ApiStatusResponse(BaseModel):
    """Response schema for the status endpoint."""
    status: Literal["ok", "error"]
    timestamp: str
    google_api_status: UpstreamStatus
    version: str


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    error: str = Field(..., description="Error message")
    code: str = Field(..., description="Machine-readable error code")
