"""
Shared fixtures for pagerduty_client tests.
"""
import logging
import threading
import time
from typing import List, Optional

import pytest

from pagerduty_client.client import ClientConfig


# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


class FakeClient:
    """Stand-in for PagerDutyClient that records credential checks."""

    def __init__(self, config: ClientConfig, validate_error: Optional[Exception] = None):
        self.config = config
        self.validate_error = validate_error
        self.validate_calls = 0
        self.validate_started = threading.Event()
        self.release_validate: Optional[threading.Event] = None

    def validate_auth(self) -> None:
        self.validate_calls += 1
        self.validate_started.set()
        if self.release_validate is not None:
            self.release_validate.wait(timeout=5)
        if self.validate_error is not None:
            raise self.validate_error


class RecordingFactory:
    """Client factory that records every construction attempt."""

    def __init__(
        self,
        validate_error: Optional[Exception] = None,
        construct_error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.validate_error = validate_error
        self.construct_error = construct_error
        self.delay = delay
        self.release_validate: Optional[threading.Event] = None
        self.configs: List[ClientConfig] = []
        self.clients: List[FakeClient] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.configs)

    @property
    def validate_calls(self) -> int:
        return sum(client.validate_calls for client in self.clients)

    def __call__(self, config: ClientConfig) -> FakeClient:
        with self._lock:
            self.configs.append(config)
        if self.delay:
            time.sleep(self.delay)
        if self.construct_error is not None:
            raise self.construct_error
        client = FakeClient(config, self.validate_error)
        client.release_validate = self.release_validate
        with self._lock:
            self.clients.append(client)
        return client


@pytest.fixture(autouse=True)
def clear_log_env(monkeypatch):
    """Keep debug verbosity independent of the developer's shell."""
    monkeypatch.delenv("PAGERDUTY_LOG", raising=False)
    monkeypatch.delenv("TF_LOG", raising=False)
    logging.getLogger("pagerduty_client").setLevel(logging.INFO)
    yield
    logging.getLogger("pagerduty_client").setLevel(logging.NOTSET)


@pytest.fixture
def recording_factory():
    """Build RecordingFactory instances with custom failure modes."""
    return RecordingFactory


@pytest.fixture
def factory(recording_factory):
    """Recording client factory."""
    return recording_factory()
