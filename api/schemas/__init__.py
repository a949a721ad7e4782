# Schemas module
from .requests import SingleCheckRequest
from .responses import (
    BatchCheckResponse,
    CredentialResult,
    BatchCheckSummary,
    BatchCheckResultsResponse,
    SingleCheckResponse,
    UpstreamStatus,
    ApiStatusResponse,
    ErrorResponse
)

__all__ = [
    "SingleCheckRequest",
    "BatchCheckResponse",
    "CredentialResult",
    "BatchCheckSummary",
    "BatchCheckResultsResponse",
    "SingleCheckResponse",
    "UpstreamStatus",
    "ApiStatusResponse",
    "ErrorResponse"
]
