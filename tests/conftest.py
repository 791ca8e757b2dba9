from unittest.mock import AsyncMock

import pytest

from mcp_protonmail.email.admission import AllowListGuard, RateLimiter
from mcp_protonmail.email.health import HealthReporter
from mcp_protonmail.email.outcome import LastOutcomeStore
from mcp_protonmail.email.pipeline import SendOrchestrator
from mcp_protonmail.shared.models import SendEmailRequest


class FakeClock:
    """Manually advanced clock for rate limiter tests."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_transport():
    transport = AsyncMock()
    transport.send.return_value = "<abc123@example.com>"
    transport.verify_connection.return_value = True
    return transport


@pytest.fixture
def outcomes():
    return LastOutcomeStore()


@pytest.fixture
def make_orchestrator(mock_transport, outcomes, clock):
    def _make(allow_list=(), limit=10):
        return SendOrchestrator(
            transport=mock_transport,
            allow_list=AllowListGuard(allow_list),
            rate_limiter=RateLimiter(limit, clock=clock),
            outcomes=outcomes,
        )

    return _make


@pytest.fixture
def make_reporter(mock_transport, outcomes, clock):
    def _make(allow_list=(), limit=10, rate_limiter=None):
        return HealthReporter(
            transport=mock_transport,
            allow_list=AllowListGuard(allow_list),
            rate_limiter=rate_limiter or RateLimiter(limit, clock=clock),
            outcomes=outcomes,
        )

    return _make


@pytest.fixture
def make_request():
    def _make(**overrides):
        fields = {"to": "a@x.com", "subject": "Hello", "body": "Body text"}
        fields.update(overrides)
        return SendEmailRequest(**fields)

    return _make
