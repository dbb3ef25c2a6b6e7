"""Pytest configuration for the license agent test suite."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import respx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from license_agent import LicenseAgent  # noqa: E402
from models import AgentConfig  # noqa: E402

SERVER_URL = "http://license.test/api"

VALID_VERDICT = {
    "is_valid": True,
    "reason": "valid",
    "status": "active",
    "expires_at": "2027-01-01T00:00:00Z",
    "allowed_data": {"features": ["all"]},
}

REVOKED_VERDICT = {
    "is_valid": False,
    "reason": "revoked",
    "status": "revoked",
}


class FakeClock:
    """Manually advanced clock injected into the agent."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> AgentConfig:
    return AgentConfig(
        server_url=SERVER_URL,
        secret_key="prod_testprefix_testsecret",
        product_name="TestProduct",
        cache_ttl=timedelta(seconds=1),
        grace_period=timedelta(seconds=5),
        request_timeout=timedelta(milliseconds=500),
    )


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def agent(config, clock, events) -> LicenseAgent:
    return LicenseAgent(config, event_sinks=[events.append], clock=clock)


@pytest.fixture
def license_server():
    with respx.mock(base_url=SERVER_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def validate_route(license_server):
    return license_server.post("/licenses/validate")
