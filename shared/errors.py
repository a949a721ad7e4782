"""Error taxonomy shared by the store, the processor and the HTTP layer."""
from typing import Optional


class LeakCheckError(Exception):
    """Base error. Rendered on the wire as ``{error, code}``."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    prefix = "Internal server error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    @property
    def message(self) -> str:
        return f"{self.prefix}: {self.detail}"

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}



class InvalidInput(LeakCheckError):
    """Malformed, empty or oversized submission."""

    code = "INVALID_INPUT"
    status_code = 400
    prefix = "Invalid input"



class NotFound(LeakCheckError):
    """Job id unknown (evicted or never existed)."""

    code = "NOT_FOUND"
    status_code = 404
    prefix = "Resource not found"



class ExternalServiceError(LeakCheckError):
    """The upstream classifier failed a synchronous request."""

    code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502
    prefix = "External service error"



class JobFailed(LeakCheckError):
    """A batch job hit an internal fault; the job error is reported verbatim."""

    code = "JOB_FAILED"
    status_code = 500

    @property
    def message(self) -> str:
        return self.detail



class InternalError(LeakCheckError):
    """Unexpected fault outside any job."""



class TransientClassifierError(Exception):
    """Per-credential failure (timeout, transport error, upstream 5xx).

    Never leaves the processor: it is recorded as a task-level ``error``.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
