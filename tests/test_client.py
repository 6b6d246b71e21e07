"""
Evolution Client Tests
----------------------
Tests for the HTTP transport using httpx.MockTransport.

Tests cover:
- Headers and request shape
- Status classification
- Retry bounds and backoff delays
"""

import asyncio
import json
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

from api.client import USER_AGENT, EvolutionClient
from core.errors import ErrorKind


class Recorder:
    """MockTransport handler that replays responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def make_client(config, recorder, sleep=None):
    return EvolutionClient(config, transport=httpx.MockTransport(recorder), sleep=sleep)


def run(client, coro_factory):
    async def _run():
        try:
            return await coro_factory()
        finally:
            await client.aclose()
    return asyncio.run(_run())


class TestRequests:
    """Tests for request construction."""

    def test_headers_and_body(self, server_config):
        """API key, user agent and JSON body are sent."""
        recorder = Recorder(httpx.Response(201, json={"key": {"id": "m1"}}))
        client = make_client(server_config, recorder)

        outcome = run(client, lambda: client.post("/message/sendText/i1", {"number": "1", "text": "hi"}))

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://evolution.test/message/sendText/i1"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["user-agent"] == USER_AGENT
        assert json.loads(request.content) == {"number": "1", "text": "hi"}
        assert outcome.success
        assert outcome.status_code == 201
        assert outcome.data == {"key": {"id": "m1"}}

    def test_query_params(self, server_config):
        """Query parameters end up in the URL; GET sends no body."""
        recorder = Recorder(httpx.Response(200, json=[]))
        client = make_client(server_config, recorder)

        run(client, lambda: client.get("/chat/findChats/i1", {"ignored": True}, query={"page": 2}))

        request = recorder.requests[0]
        assert request.url.params["page"] == "2"
        assert request.content == b""

    def test_text_body(self, server_config):
        """Non-JSON responses come back as text."""
        recorder = Recorder(httpx.Response(200, text="Welcome to the Evolution API"))
        client = make_client(server_config, recorder)

        outcome = run(client, lambda: client.get("/"))

        assert outcome.data == "Welcome to the Evolution API"

    def test_empty_body(self, server_config):
        """Empty responses carry no data."""
        recorder = Recorder(httpx.Response(204))
        client = make_client(server_config, recorder)

        outcome = run(client, lambda: client.delete("/instance/logout/i1"))

        assert outcome.success
        assert outcome.data is None


class TestFailures:
    """Tests for classification and retries."""

    def test_not_found_is_not_retried(self, server_config, sleep_recorder):
        """404 fails once with the server's message."""
        recorder = Recorder(httpx.Response(404, json={"message": "Instance not found"}))
        client = make_client(server_config, recorder, sleep_recorder)

        outcome = run(client, lambda: client.get("/instance/connect/i1"))

        assert not outcome.success
        assert outcome.error.kind == ErrorKind.RESOURCE_NOT_FOUND
        assert outcome.error.message == "Instance not found"
        assert outcome.status_code == 404
        assert len(recorder.requests) == 1
        assert sleep_recorder.delays == []

    def test_service_unavailable_is_not_retried(self, server_config, sleep_recorder):
        """503 is an API error, not a transient one."""
        recorder = Recorder(httpx.Response(503))
        client = make_client(server_config, recorder, sleep_recorder)

        outcome = run(client, lambda: client.get("/"))

        assert outcome.error.kind == ErrorKind.API_ERROR
        assert len(recorder.requests) == 1

    def test_bad_gateway_is_retried(self, server_config, sleep_recorder):
        """502 is retried until attempts run out, with doubling delays."""
        recorder = Recorder(httpx.Response(502))
        client = make_client(server_config, recorder, sleep_recorder)

        outcome = run(client, lambda: client.get("/"))

        assert outcome.error.kind == ErrorKind.NETWORK_ERROR
        assert len(recorder.requests) == 3
        assert sleep_recorder.delays == [0.1, 0.2]
        assert client.stats() == {"request_count": 3}

    def test_connect_error_then_success(self, server_config, sleep_recorder):
        """A transient connection failure recovers on retry."""
        recorder = Recorder(
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"status": 200}),
        )
        client = make_client(server_config, recorder, sleep_recorder)

        outcome = run(client, lambda: client.get("/"))

        assert outcome.success
        assert len(recorder.requests) == 2
        assert sleep_recorder.delays == [0.1]

    def test_request_id_attached(self, server_config):
        """Failed outcomes carry a request id and the operation."""
        recorder = Recorder(httpx.Response(401))
        client = make_client(server_config, recorder)

        outcome = run(client, lambda: client.get("/instance/fetchInstances"))

        assert outcome.error.kind == ErrorKind.AUTHENTICATION_ERROR
        assert outcome.error.context.request_id.startswith("req_1_")
        assert outcome.error.context.operation == "GET /instance/fetchInstances"

    def test_health_check_has_no_retries(self, server_config, sleep_recorder):
        """health_check() makes exactly one attempt."""
        recorder = Recorder(httpx.ConnectError("down"))
        client = make_client(server_config, recorder, sleep_recorder)

        outcome = run(client, client.health_check)

        assert outcome.error.kind == ErrorKind.NETWORK_ERROR
        assert len(recorder.requests) == 1
        assert sleep_recorder.delays == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
