"""Async HTTP client for the leak check API.

Every call returns ``Ok(value)`` or ``Err(ApiError)``. Response bodies are
decoded exactly once, in ``decode_response``, so callers never inspect raw
JSON shapes to tell errors from results.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar, Union

import aiohttp
from pydantic import BaseModel, ValidationError

from api.schemas.responses import (
    ApiStatusResponse,
    BatchCheckResponse,
    BatchCheckResultsResponse,
    ErrorResponse,
    SingleCheckResponse
)
from shared.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

NETWORK_ERROR = "NETWORK_ERROR"
NOT_FOUND = "NOT_FOUND"
FILE_TOO_LARGE = "FILE_TOO_LARGE"
INVALID_RESPONSE = "INVALID_RESPONSE"
CLIENT_ERROR = "CLIENT_ERROR"


@dataclass(frozen=True)
class ApiError:
    code: str
    message: str
    status: Optional[int] = None

    @property
    def is_network_error(self) -> bool:
        return self.code == NETWORK_ERROR

    @property
    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok = True


@dataclass(frozen=True)
class Err:
    error: ApiError
    ok = False


ApiResult = Union[Ok[T], Err]


def decode_response(status: int, payload: Any, model: Type[M]) -> "ApiResult[M]":
    """Decode one HTTP response into Ok(model) or Err(ApiError)."""
    if status >= 400:
        try:
            body = ErrorResponse.model_validate(payload)
            return Err(ApiError(code=body.code, message=body.error, status=status))
        except ValidationError:
            return Err(ApiError(code="HTTP_ERROR", message=f"Request failed with HTTP {status}", status=status))

    try:
        return Ok(model.model_validate(payload))
    except ValidationError as e:
        logger.error(f"Unexpected response shape for {model.__name__}: {e}")
        return Err(ApiError(code=INVALID_RESPONSE, message="Unexpected response from server", status=status))


class LeakCheckApiClient:
    """Client for the batch and single credential check endpoints."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = 30.0,
        session: aiohttp.ClientSession = None
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/") + settings.api_prefix
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "LeakCheckApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, model: Type[M], action: str, **kwargs) -> "ApiResult[M]":
        session = await self._get_session()
        try:
            async with session.request(method, f"{self.base_url}{path}", **kwargs) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = None
                return decode_response(response.status, payload, model)
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            logger.warning(f"API call failed while {action}: {e}")
            return Err(ApiError(code=NETWORK_ERROR, message=f"Network error occurred while {action}"))

    async def check_single(self, username: str, password: str) -> "ApiResult[SingleCheckResponse]":
        return await self._request(
            "POST", "/check/single", SingleCheckResponse, "checking credential",
            json={"username": username, "password": password}
        )

    async def upload_batch(
        self,
        data: bytes,
        filename: str = "credentials.txt",
        input_type: str = "email_pass"
    ) -> "ApiResult[BatchCheckResponse]":
        """Upload a credential file; files over the size limit are refused locally."""
        if len(data) > settings.max_file_size_bytes:
            return Err(ApiError(
                code=FILE_TOO_LARGE,
                message=f"File size exceeds {settings.max_file_size_bytes // (1024 * 1024)}MB limit"
            ))

        form = aiohttp.FormData()
        form.add_field("file", data, filename=filename, content_type="text/plain")
        form.add_field("inputType", input_type)

        return await self._request(
            "POST", "/check/batch", BatchCheckResponse, "uploading credentials", data=form
        )

    async def get_batch_status(self, job_id: str) -> "ApiResult[BatchCheckResultsResponse]":
        return await self._request(
            "GET", f"/check/batch/{job_id}/status", BatchCheckResultsResponse, "checking job status"
        )

    async def get_api_status(self) -> "ApiResult[ApiStatusResponse]":
        return await self._request("GET", "/status", ApiStatusResponse, "checking API status")
