"""Credential check routes for the REST API."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from api.dependencies import get_batch_service
from api.schemas.requests import SingleCheckRequest
from api.schemas.responses import (
    BatchCheckResponse,
    BatchCheckResultsResponse,
    ErrorResponse,
    SingleCheckResponse
)
from api.services.batch_service import BatchCheckService
from api.services.parser import parse_credential_file
from shared.config import settings
from shared.errors import InvalidInput, JobFailed, NotFound
from storage.job_store import JobStore
from storage.models import JobState
from storage.registry import get_job_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/check",
    tags=["check"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)


@router.post("/single", response_model=SingleCheckResponse)
async def check_single(
    request: SingleCheckRequest,
    service: BatchCheckService = Depends(get_batch_service)
):
    """Check one credential synchronously."""
    result = await service.check_single(request.username, request.password)

    return SingleCheckResponse(
        username=request.username,
        is_leaked=result.is_leaked,
        message=result.message or ""
    )


@router.post("/batch", response_model=BatchCheckResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_batch(
    file: Optional[UploadFile] = File(None),
    input_type: Optional[str] = Form(None, alias="inputType"),
    service: BatchCheckService = Depends(get_batch_service)
):
    """
    Submit a credential file for batch checking.

    - Validates size, line count and format
    - Creates the job in PENDING state
    - Starts processing asynchronously and returns the job id
    """
    if file is None:
        raise InvalidInput("No file provided")

    # One byte past the limit is enough to know the file is too large
    data = await file.read(settings.max_file_size_bytes + 1)
    tasks = parse_credential_file(data, input_type)

    job_id = await service.submit(tasks)
    logger.info(f"Accepted batch job {job_id} ({len(tasks)} credentials from {file.filename})")

    return BatchCheckResponse(job_id=job_id, message="Batch job started successfully")


@router.get("/batch/{job_id}/status", response_model=BatchCheckResultsResponse)
async def get_batch_status(
    job_id: str,
    store: JobStore = Depends(get_job_store)
):
    """Get a snapshot of a batch job's progress and results."""
    snapshot = await store.get(job_id)

    if snapshot["state"] == JobState.FAILED:
        raise JobFailed(snapshot["error"] or "Job failed")

    return BatchCheckResultsResponse(
        summary=snapshot["summary"],
        results=snapshot["results"]
    )


@router.delete("/batch/{job_id}", response_model=BatchCheckResponse)
async def delete_batch(
    job_id: str,
    store: JobStore = Depends(get_job_store)
):
    """Delete a batch job and its results."""
    if not await store.delete(job_id):
        raise NotFound(f"Job ID {job_id} not found")

    return BatchCheckResponse(job_id=job_id, message="Job successfully deleted")
