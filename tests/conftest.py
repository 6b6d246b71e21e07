"""
Test Configuration
------------------
Shared fixtures and configuration for all tests.

Network access is blocked: HTTP goes through httpx.MockTransport or a stub
transport that records calls.
"""

import sys
from pathlib import Path
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import httpx

from catalog import EndpointCatalog
from core.outcome import Outcome
from infra.config import ServerConfig


# =============================================================================
# Test Isolation: Block Side Effects
# =============================================================================

@pytest.fixture(autouse=True)
def block_real_network(monkeypatch):
    """
    Block real HTTP connections during tests.

    If something reaches the default httpx transport, it raises RuntimeError.
    Injected MockTransports are unaffected.
    """
    async def _blocked(self, request):
        raise RuntimeError(
            f"Real network access is forbidden during tests: {request.method} {request.url}"
        )

    monkeypatch.setattr(httpx.AsyncHTTPTransport, "handle_async_request", _blocked)


# =============================================================================
# Stub transport
# =============================================================================

class StubTransport:
    """
    Records calls and returns a fixed result.

    Set `result` to an Outcome (or outcome-shaped dict) and `error` to an
    exception to raise instead.
    """

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else Outcome.ok({"ok": True})
        self.error = error
        self.calls = []

    async def _call(self, method, path, body=None, query=None, headers=None):
        self.calls.append((method, path, body, query))
        if self.error is not None:
            raise self.error
        return self.result

    async def get(self, path, body=None, query=None, headers=None):
        return await self._call("GET", path, body, query, headers)

    async def post(self, path, body=None, query=None, headers=None):
        return await self._call("POST", path, body, query, headers)

    async def put(self, path, body=None, query=None, headers=None):
        return await self._call("PUT", path, body, query, headers)

    async def patch(self, path, body=None, query=None, headers=None):
        return await self._call("PATCH", path, body, query, headers)

    async def delete(self, path, body=None, query=None, headers=None):
        return await self._call("DELETE", path, body, query, headers)


class SleepRecorder:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def catalog():
    """The bundled Evolution API catalog."""
    return EndpointCatalog.load()


@pytest.fixture
def stub_transport():
    return StubTransport()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def server_config():
    """Resolved config with short retry delays."""
    return ServerConfig(
        base_url="http://evolution.test",
        api_key="test-key",
        timeout_ms=5000,
        retry_attempts=2,
        retry_delay_ms=100,
        max_retry_delay_ms=1000,
    )
