"""Credential classifier: the upstream leak-check service behind one interface."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp

from shared.config import settings
from shared.errors import TransientClassifierError
from storage.models import Outcome

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """Verdict for one credential."""
    outcome: Outcome
    message: Optional[str] = None

    @property
    def is_leaked(self) -> bool:
        return self.outcome == Outcome.LEAKED


class CredentialClassifier(Protocol):
    """Anything that can tell whether one credential is leaked."""

    async def classify(self, username: str, password: str) -> Classification:
        ...


class LeakCheckClient:
    """Classifier backed by the upstream leak-check HTTP service.

    Transport failures, timeouts and upstream 5xx raise
    TransientClassifierError so the caller can decide whether to retry.
    Any other non-success answer is a definitive ``error`` verdict.
    """

    def __init__(self, api_url: str = None, status_url: str = None, timeout: float = None):
        self.api_url = api_url or settings.leak_check_api_url
        self.status_url = status_url or settings.leak_check_status_url
        self.timeout = timeout or settings.classify_timeout
        self.headers = {
            "User-Agent": "leakcheck-batch/1.0",
            "Accept": "application/json",
        }
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.headers
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def classify(self, username: str, password: str) -> Classification:
        """Check a single credential against the upstream service."""
        session = await self._get_session()
        try:
            async with session.post(
                self.api_url,
                json={"username": username, "password": password}
            ) as response:
                if response.status >= 500:
                    body = await response.text()
                    raise TransientClassifierError(
                        f"Upstream error {response.status}: {body[:200]}",
                        status=response.status
                    )

                if response.status >= 400:
                    body = await response.text()
                    logger.warning(f"Upstream rejected credential check: {response.status}")
                    return Classification(
                        outcome=Outcome.ERROR,
                        message=f"Error: upstream rejected request ({response.status}) {body[:200]}"
                    )

                data = await response.json()

        except asyncio.TimeoutError:
            raise TransientClassifierError(f"Timeout after {self.timeout} seconds")
        except aiohttp.ClientError as e:
            raise TransientClassifierError(f"Network error: {str(e)}")

        if not isinstance(data, dict) or not isinstance(data.get("is_leaked"), bool):
            return Classification(
                outcome=Outcome.ERROR,
                message="Error: failed to decode upstream response"
            )

        if data["is_leaked"]:
            return Classification(
                outcome=Outcome.LEAKED,
                message="Credential found in a known data breach"
            )
        return Classification(
            outcome=Outcome.NOT_LEAKED,
            message="Credential not found in our breach database"
        )

    async def check_connection(self) -> bool:
        """Return True when the upstream service answers its health URL."""
        session = await self._get_session()
        try:
            async with session.get(self.status_url) as response:
                return response.status < 400
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            logger.warning(f"Upstream connection check failed: {e}")
            return False
