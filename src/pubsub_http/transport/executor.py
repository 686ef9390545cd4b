"""
Single-request HTTP execution.

Requests mostly go to the same one or two hosts, so connections are kept
alive in a pool of two httpx clients (plaintext and TLS) that is created on
first use and shared for the life of the process.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from pubsub_http.config import AgentOptions, TimeoutOptions
from pubsub_http.transport.base import HttpMethod, ResponseOutcome
from pubsub_http.transport.classifier import classify_network_error, classify_response

logger = logging.getLogger(__name__)

DEFAULT_HTTP_REQUEST_TIMEOUT_MS = TimeoutOptions().http_request_timeout_ms


class AgentPool:
    """
    Lazily created pair of pooled HTTP clients.

    One client serves http:// URIs and the other https:// URIs. Each is
    created the first time a request needs it.
    """

    def __init__(
        self,
        options: AgentOptions | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the pool.

        Args:
            options: Keep-alive and connection limits
            transport: Transport override, used by tests
        """
        self.options = options or AgentOptions()
        self._transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}

    def _limits(self) -> httpx.Limits:
        keepalive = self.options.max_sockets if self.options.keep_alive else 0
        return httpx.Limits(
            max_connections=self.options.max_sockets,
            max_keepalive_connections=keepalive,
            keepalive_expiry=self.options.keepalive_expiry,
        )

    def get_client(self, scheme: str) -> httpx.AsyncClient:
        """Get or create the client for a URI scheme."""
        key = "https" if scheme == "https" else "http"
        client = self._clients.get(key)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                limits=self._limits(),
                transport=self._transport,
                follow_redirects=False,
            )
            self._clients[key] = client
            logger.debug(f"Created {key} agent (max_sockets={self.options.max_sockets})")
        return client

    def is_initialized(self, scheme: str) -> bool:
        """Check whether the client for a scheme has been created."""
        client = self._clients.get("https" if scheme == "https" else "http")
        return client is not None and not client.is_closed

    async def aclose(self) -> None:
        """Close all clients."""
        for client in self._clients.values():
            if not client.is_closed:
                await client.aclose()
        self._clients.clear()


class TransportExecutor:
    """
    Performs exactly one HTTP round trip and classifies the result.

    Never raises for network or HTTP failures; they come back as failed
    ResponseOutcomes.
    """

    def __init__(
        self,
        pool: AgentPool | None = None,
        timeout_ms: int = DEFAULT_HTTP_REQUEST_TIMEOUT_MS,
    ):
        """
        Initialize the executor.

        Args:
            pool: Connection pool; the process-wide pool when omitted
            timeout_ms: Request timeout in milliseconds
        """
        self._pool = pool if pool is not None else get_agent_pool()
        self.timeout_ms = timeout_ms

    @property
    def pool(self) -> AgentPool:
        return self._pool

    async def execute(
        self,
        method: HttpMethod | str,
        uri: str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> ResponseOutcome:
        """
        Send a request to a single URI.

        Args:
            method: HTTP method
            uri: Full request URI
            headers: Request headers
            body: bytes/str sent as-is, dict/list sent as JSON
            params: Query string parameters

        Returns:
            Classified outcome
        """
        method = HttpMethod.parse(method)
        start_time = time.monotonic()

        try:
            client = self._pool.get_client(httpx.URL(uri).scheme)
            async with asyncio.timeout(self.timeout_ms / 1000):
                response = await client.request(
                    method.value.upper(),
                    uri,
                    headers=dict(headers) if headers else None,
                    params=dict(params) if params else None,
                    timeout=self.timeout_ms / 1000,
                    **_body_kwargs(body),
                )
        except (httpx.HTTPError, httpx.InvalidURL, TimeoutError) as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            outcome = classify_network_error(e)
            logger.debug(
                f"{method.value.upper()} {uri} failed after {latency_ms:.0f}ms: "
                f"{outcome.error.code}"
            )
            return outcome

        latency_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            f"{method.value.upper()} {uri} -> {response.status_code} in {latency_ms:.0f}ms"
        )
        return classify_response(response.status_code, response.headers, response.content)


def _body_kwargs(body: Any) -> dict[str, Any]:
    if body is None:
        return {}
    if isinstance(body, bytearray):
        return {"content": bytes(body)}
    if isinstance(body, (bytes, str)):
        return {"content": body}
    return {"json": body}


# Global pool instance
_agent_pool: AgentPool | None = None


def get_agent_pool(options: AgentOptions | None = None) -> AgentPool:
    """
    Get the process-wide agent pool.

    Options only apply when the pool is created by this call.

    Returns:
        Global pool instance
    """
    global _agent_pool
    if _agent_pool is None:
        _agent_pool = AgentPool(options)
    return _agent_pool


def reset_agent_pool() -> None:
    """Reset the global pool (for testing)."""
    global _agent_pool
    _agent_pool = None
