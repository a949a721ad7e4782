"""Pytest configuration and fixtures."""
import asyncio

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from api.dependencies import ServiceRegistry
from consumer.classifier import Classification
from shared.errors import TransientClassifierError
from storage.job_store import JobStore
from storage.models import CredentialTask, Outcome
from storage.registry import StoreRegistry


class FakeClassifier:
    """Scripted stand-in for the upstream leak-check service."""

    def __init__(self, verdicts=None, delay=0.0, transient_failures=None, connected=True):
        # username -> Outcome, or an exception instance to raise on every call
        self.verdicts = verdicts or {}
        self.delay = delay
        # username -> number of leading calls that fail transiently
        self.transient_failures = dict(transient_failures or {})
        self.connected = connected
        self.calls = []

    async def classify(self, username, password):
        self.calls.append(username)
        if self.delay:
            await asyncio.sleep(self.delay)

        remaining = self.transient_failures.get(username, 0)
        if remaining:
            self.transient_failures[username] = remaining - 1
            raise TransientClassifierError("Upstream error 503: unavailable", status=503)

        verdict = self.verdicts.get(username, Outcome.NOT_LEAKED)
        if isinstance(verdict, Exception):
            raise verdict
        if verdict == Outcome.LEAKED:
            return Classification(outcome=Outcome.LEAKED, message="Credential found in a known data breach")
        if verdict == Outcome.ERROR:
            return Classification(outcome=Outcome.ERROR, message="Error: upstream rejected request (400)")
        return Classification(outcome=Outcome.NOT_LEAKED, message="Credential not found in our breach database")

    async def check_connection(self):
        return self.connected


def make_tasks(count, prefix="user"):
    """Build credential tasks with unique usernames."""
    return [
        CredentialTask(
            raw_line=f"{prefix}{i}@example.com:secret{i}",
            username=f"{prefix}{i}@example.com",
            password=f"secret{i}"
        )
        for i in range(count)
    ]


@pytest.fixture
def task_factory():
    """Factory for credential tasks."""
    return make_tasks


@pytest.fixture
def classifier_factory():
    """Factory for scripted classifiers."""
    return FakeClassifier


@pytest.fixture
def store():
    """Create an empty job store."""
    return JobStore()


@pytest.fixture
def classifier():
    """Create a classifier that answers not_leaked for everyone."""
    return FakeClassifier()


@pytest.fixture
def sample_file():
    """Create a small credential file."""
    return (
        b"leaked@example.com:hunter2\n"
        b"clean@example.com:correcthorse\n"
        b"broken@example.com:whatever\n"
    )


@pytest.fixture
def three_way_classifier():
    """Classifier answering leaked, not_leaked and error for the sample file."""
    return FakeClassifier(verdicts={
        "leaked@example.com": Outcome.LEAKED,
        "clean@example.com": Outcome.NOT_LEAKED,
        "broken@example.com": TransientClassifierError("Upstream error 502: bad gateway", status=502),
    })


@pytest_asyncio.fixture
async def app_client(store, three_way_classifier, monkeypatch):
    """HTTP client bound to the app with an isolated store and fake classifier."""
    from api.main import app
    from shared.config import settings

    monkeypatch.setattr(settings, "retry_base_delay", 0.0)

    ServiceRegistry.init(classifier=three_way_classifier, store=store)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        await ServiceRegistry.close()
        StoreRegistry.close()
