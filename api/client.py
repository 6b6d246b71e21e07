"""
Evolution API Client
--------------------
Async HTTP transport for one Evolution API server.

The API key travels in the `apikey` header and is never logged. Every call
goes through a RequestExecutor, so transient failures are retried and all
failures come back as classified Outcomes instead of exceptions.
"""

from datetime import datetime
from typing import Any, Dict, Optional
import logging

import httpx

from core import __version__
from core.errors import ErrorClassifier, ErrorContext, HttpStatusFailure
from core.outcome import Outcome
from core.retry import RequestExecutor, Sleep
from infra.config import ServerConfig


USER_AGENT = f"evolution-api-mcp/{__version__}"


class EvolutionClient:
    """
    Transport used by generated tools.

    Rules:
    - One AsyncClient per server, closed with `aclose()`
    - Status >= 400 is a failure, classified by status code
    - Never raises for remote failures
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        executor: Optional[RequestExecutor] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.config = config
        self._logger = logging.getLogger("evolution.api.client")
        self._verbose = config.logging_enabled

        self._executor = executor or RequestExecutor(
            config.retry_policy(),
            classifier=ErrorClassifier(timeout_ms=config.timeout_ms),
            sleep=sleep,
        )
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers=self._get_headers(),
            timeout=config.timeout_ms / 1000,
            transport=transport,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "apikey": self.config.api_key,
        }

    async def get(self, path: str, body: Optional[Dict] = None, query: Optional[Dict] = None, **kwargs) -> Outcome:
        """GET request. Any body is ignored."""
        return await self.request("GET", path, query=query, **kwargs)

    async def post(self, path: str, body: Optional[Dict] = None, query: Optional[Dict] = None, **kwargs) -> Outcome:
        return await self.request("POST", path, body=body, query=query, **kwargs)

    async def put(self, path: str, body: Optional[Dict] = None, query: Optional[Dict] = None, **kwargs) -> Outcome:
        return await self.request("PUT", path, body=body, query=query, **kwargs)

    async def patch(self, path: str, body: Optional[Dict] = None, query: Optional[Dict] = None, **kwargs) -> Outcome:
        return await self.request("PATCH", path, body=body, query=query, **kwargs)

    async def delete(self, path: str, body: Optional[Dict] = None, query: Optional[Dict] = None, **kwargs) -> Outcome:
        return await self.request("DELETE", path, body=body, query=query, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        retries: Optional[int] = None,
    ) -> Outcome:
        """Send one request with retries. `retries` overrides the attempt bound."""
        method = method.upper()
        context = ErrorContext(operation=f"{method} {path}", endpoint=path)

        async def send() -> Outcome:
            start_time = datetime.now()
            if self._verbose:
                self._logger.info(f"{method} {path}")

            response = await self._http.request(
                method,
                path,
                params=query or None,
                json=body if body is not None else None,
                headers=headers,
            )
            response_time = (datetime.now() - start_time).total_seconds() * 1000
            data = parse_body(response)

            if self._verbose:
                self._logger.info(
                    f"{response.status_code} {method} {path} ({response_time:.0f}ms)",
                    extra={"status_code": response.status_code},
                )

            if response.status_code >= 400:
                raise HttpStatusFailure(
                    response.status_code,
                    data,
                    url=str(response.request.url),
                    reason=response.reason_phrase,
                )

            return Outcome.ok(data, status_code=response.status_code, headers=dict(response.headers))

        outcome = await self._executor.execute(send, retries=retries, context=context)
        if not outcome.success:
            self._logger.warning(
                f"{method} {path} failed: {outcome.error.kind.value}: {outcome.error.message}",
                extra={"status_code": outcome.status_code or None, "error_kind": outcome.error.kind.value},
            )
        return outcome

    async def health_check(self) -> Outcome:
        """GET / on the server, without retries."""
        return await self.request("GET", "/", retries=0)

    def stats(self) -> Dict[str, int]:
        return {"request_count": self._executor.request_count}

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "EvolutionClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


def parse_body(response: httpx.Response) -> Any:
    """JSON when possible, text otherwise, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
