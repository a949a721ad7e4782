# Client module
from .api_client import ApiError, ApiResult, Err, LeakCheckApiClient, Ok, decode_response
from .polling import Phase, PollingController, PollingView
from .progress import ProgressEstimator, format_eta

__all__ = [
    "ApiError",
    "ApiResult",
    "Err",
    "LeakCheckApiClient",
    "Ok",
    "decode_response",
    "Phase",
    "PollingController",
    "PollingView",
    "ProgressEstimator",
    "format_eta"
]
